"""
Tests for CoordinatorRepository against an in-memory SQLite database,
plus retry behavior against a mocked session.
"""
import pytest
from unittest.mock import Mock
from sqlalchemy.exc import OperationalError, ProgrammingError

from core.exceptions import CoordinatorNotFoundException, StoreUnavailableException
from core.grading.classifier import classify
from core.grading.models import HealthAssessment
from core.matcher.models import LanguageProficiency
from database.models import CoordinatorCareSettings
from database.repositories import CoordinatorRepository
from tests.mocks.store_mocks import make_profile, make_skill

pytestmark = pytest.mark.db


@pytest.fixture
def repo(db_session):
    return CoordinatorRepository(db_session, retry_wait_seconds=0)


@pytest.fixture
def seeded_repo(repo):
    repo.save_coordinator(make_profile("a", base_care_level=1, max_care_level=3, customer_satisfaction=4.0))
    repo.save_coordinator(make_profile("b", base_care_level=3, max_care_level=6, customer_satisfaction=5.0,
                                       specialty_areas=frozenset({"Dementia"})))
    repo.save_coordinator(make_profile("c", base_care_level=4, max_care_level=6))
    repo.save_coordinator(make_profile("off", is_active=False))
    repo.commit()
    return repo


class TestCoordinatorQueries:

    def test_find_eligible_by_band(self, seeded_repo):
        assert [p.coordinator_id for p in seeded_repo.find_eligible_coordinators(3)] == ["a", "b"]
        assert [p.coordinator_id for p in seeded_repo.find_eligible_coordinators(6)] == ["b", "c"]
        assert seeded_repo.find_eligible_coordinators(0) == []

    def test_profile_round_trip(self, seeded_repo):
        b = next(p for p in seeded_repo.find_eligible_coordinators(3) if p.coordinator_id == "b")

        assert b == make_profile("b", base_care_level=3, max_care_level=6, customer_satisfaction=5.0,
                                 specialty_areas=frozenset({"dementia"}))

    def test_reporting_queries(self, seeded_repo):
        assert seeded_repo.count_active_coordinators() == 3
        assert seeded_repo.average_customer_satisfaction() == pytest.approx((4.0 + 5.0 + 4.0) / 3)

    def test_average_satisfaction_empty(self, repo):
        assert repo.average_customer_satisfaction() == 0.0

    def test_top_performers(self, seeded_repo):
        seeded_repo.save_coordinator(make_profile("full", customer_satisfaction=5.0,
                                                  current_active_cases=10, max_simultaneous_cases=10))
        seeded_repo.commit()

        assert [p.coordinator_id for p in seeded_repo.find_top_performers(4.0, 10)] == ["b", "a", "c"]
        assert [p.coordinator_id for p in seeded_repo.find_top_performers(4.0, 2)] == ["b", "a"]
        assert [p.coordinator_id for p in seeded_repo.find_top_performers(4.5, 10)] == ["b"]

    def test_find_by_language_and_region(self, repo):
        repo.save_coordinator(make_profile("x"))
        repo.save_coordinator(make_profile("y", working_regions=frozenset({"부산"})))
        repo.save_coordinator(make_profile("z"))
        repo.save_coordinator(make_profile("w"))
        repo.save_coordinator(make_profile("v", is_active=False))
        repo.add_language_skill("x", make_skill("x", "EN"))
        repo.add_language_skill("x", make_skill("x", "JP", priority_order=2))
        repo.add_language_skill("y", make_skill("y", "EN"))
        repo.add_language_skill("z", make_skill("z", "JP"))
        repo.add_language_skill("w", make_skill("w", "EN", is_active=False))
        repo.add_language_skill("v", make_skill("v", "EN"))
        repo.commit()

        assert [p.coordinator_id for p in repo.find_by_language_and_region("en", "서울")] == ["x"]
        assert [p.coordinator_id for p in repo.find_by_language_and_region("JP", "서울")] == ["x", "z"]
        assert repo.find_by_language_and_region("EN", "제주") == []

    def test_distributions(self, repo):
        repo.save_coordinator(make_profile("p1", specialty_areas=frozenset({"dementia"})))
        repo.save_coordinator(make_profile("p2", working_regions=frozenset({"서울", "부산"}),
                                           specialty_areas=frozenset({"dementia", "medical"})))
        repo.save_coordinator(make_profile("p3", working_regions=frozenset({"대구"}),
                                           specialty_areas=frozenset({"medical"}), is_active=False))
        repo.commit()

        assert list(repo.coordinator_distribution_by_region().items()) == [("서울", 2), ("부산", 1)]
        assert list(repo.coordinator_distribution_by_specialty().items()) == [("dementia", 2), ("medical", 1)]

    def test_distributions_empty(self, repo):
        assert repo.coordinator_distribution_by_region() == {}
        assert repo.coordinator_distribution_by_specialty() == {}


class TestLanguageSkillQueries:

    def test_bulk_fetch_orders_by_priority_and_skips_inactive(self, seeded_repo):
        seeded_repo.add_language_skill("a", make_skill("a", "JP", LanguageProficiency.BASIC, priority_order=2))
        seeded_repo.add_language_skill("a", make_skill("a", "en", LanguageProficiency.NATIVE, certification="TOEIC"))
        seeded_repo.add_language_skill("b", make_skill("b", "ZH", is_active=False))
        seeded_repo.commit()

        skills = seeded_repo.find_language_skills_for(["a", "b", "c"])

        assert set(skills) == {"a", "b", "c"}
        assert [s.language_code for s in skills["a"]] == ["EN", "JP"]
        assert skills["a"][0].proficiency_level is LanguageProficiency.NATIVE
        assert skills["a"][0].certification == "TOEIC"
        assert skills["a"][0].coordinator_id == "a"
        assert skills["b"] == []
        assert skills["c"] == []

        assert seeded_repo.find_language_skills("a") == skills["a"]
        assert [s.language_code for s in seeded_repo.find_all_active_language_skills()] == ["EN", "JP"]

    def test_bulk_fetch_with_no_ids(self, repo):
        assert repo.find_language_skills_for([]) == {}


class TestAssessments:

    def test_save_and_get_assessment(self, repo):
        assessment = HealthAssessment(2, 2, 2, 3, ltci_grade=3, disease_tags=frozenset({"dementia"}), member_id="m-1")

        record = repo.save_assessment(assessment)
        repo.commit()

        assert record.adl_score == assessment.adl_score
        assert record.care_grade_level == 3
        assert record.overall_care_grade == classify(assessment).grade_name

        loaded = repo.get_assessment(record.id)
        assert loaded.assessment_id == record.id
        assert loaded.member_id == "m-1"
        assert loaded.disease_tags == frozenset({"DEMENTIA"})
        assert loaded.care_grade_level == assessment.care_grade_level

    def test_missing_assessment(self, repo):
        assert repo.get_assessment(12345) is None


class TestSettingsUpdates:

    def test_update_care_settings(self, seeded_repo):
        profile = seeded_repo.update_care_settings("a", current_active_cases=9, working_regions={"부산", "서울"})
        seeded_repo.commit()

        assert profile.current_active_cases == 9
        assert profile.working_regions == frozenset({"부산", "서울"})
        row = seeded_repo.db.query(CoordinatorCareSettings).filter_by(coordinator_id="a").one()
        assert row.working_regions == ["부산", "서울"]

    def test_unknown_setting_rejected(self, seeded_repo):
        with pytest.raises(ValueError, match="coordinator_id"):
            seeded_repo.update_care_settings("a", coordinator_id="z")

    def test_unknown_coordinator(self, seeded_repo):
        with pytest.raises(CoordinatorNotFoundException, match="nobody"):
            seeded_repo.update_care_settings("nobody", is_active=False)


class TestRetries:
    """Transient OperationalErrors are retried; anything else surfaces as StoreUnavailableException."""

    def _operational_error(self):
        return OperationalError("SELECT 1", {}, Exception("connection reset"))

    def test_transient_error_is_retried(self):
        session = Mock()
        result = Mock()
        result.scalar_one.return_value = 3
        session.execute.side_effect = [self._operational_error(), result]

        repo = CoordinatorRepository(session, retry_attempts=3, retry_wait_seconds=0)

        assert repo.count_active_coordinators() == 3
        assert session.execute.call_count == 2
        session.rollback.assert_called_once()

    def test_exhausted_retries_raise_store_unavailable(self):
        session = Mock()
        session.execute.side_effect = self._operational_error()

        repo = CoordinatorRepository(session, retry_attempts=3, retry_wait_seconds=0)

        with pytest.raises(StoreUnavailableException) as exc_info:
            repo.find_eligible_coordinators(3)

        assert session.execute.call_count == 3
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_other_database_errors_are_not_retried(self):
        session = Mock()
        session.execute.side_effect = ProgrammingError("SELECT 1", {}, Exception("no such table"))

        repo = CoordinatorRepository(session, retry_wait_seconds=0)

        with pytest.raises(StoreUnavailableException):
            repo.get_assessment(1)

        assert session.execute.call_count == 1
