#!/usr/bin/env python3
"""
Unit tests for the rule-based care grade classifier.
"""

import unittest

from core.grading import CareGradeClassifier, HealthAssessment, classify, estimate_grade_from_adl
from core.grading.classifier import DEFAULT_RULES


def assessment(mobility=1, eating=1, toilet=1, communication=1, **kwargs) -> HealthAssessment:
    return HealthAssessment(
        mobility_level=mobility,
        eating_level=eating,
        toilet_level=toilet,
        communication_level=communication,
        **kwargs
    )


class TestCareGradeClassifier(unittest.TestCase):
    """Rule priority and outcome vocabulary."""

    def test_01_terminal_status_is_hospice_regardless_of_profile(self):
        """careTargetStatus 1 wins over a perfect ADL profile and an LTCI grade."""
        print("\n🏥 UNIT Test 1: Hospice (high severity)")

        for ltci in (None, 1, 5, 6, 8):
            result = classify(assessment(care_target_status=1, ltci_grade=ltci))
            self.assertEqual(result.grade_level, 0)
            self.assertEqual(result.grade_name, "호스피스 케어 (고도)")
            self.assertEqual(result.severity, "고도")
            self.assertEqual(result.rule, "hospice_high")
            self.assertTrue(result.is_hospice)

        print("  ✓ gradeLevel 0 for every LTCI grade")

    def test_02_unlikely_recovery_is_moderate_hospice(self):
        print("\n🏥 UNIT Test 2: Hospice (moderate severity)")

        result = classify(assessment(care_target_status=2, meal_type=3))

        self.assertEqual(result.grade_level, 0)
        self.assertEqual(result.grade_name, "호스피스 케어 (중등도)")
        self.assertEqual(result.rule, "hospice_moderate")

    def test_03_fully_dependent_ignores_adl_and_ltci(self):
        print("\n🏥 UNIT Test 3: Fully dependent")

        result = classify(assessment(care_target_status=3, ltci_grade=5))

        self.assertEqual(result.grade_level, 1)
        self.assertEqual(result.grade_name, "1등급 상당 (완전의존)")
        self.assertEqual(result.rule, "fully_dependent")

    def test_04_tube_feeding_overrides_mild_ltci_grade(self):
        """mealType 3 forces grade 1 even with LTCI grade 5."""
        print("\n🏥 UNIT Test 4: Severe indicator (tube feeding)")

        result = classify(assessment(meal_type=3, ltci_grade=5))

        self.assertEqual(result.grade_level, 1)
        self.assertEqual(result.grade_name, "1등급 상당 (중증지표)")
        self.assertEqual(result.rule, "severe_indicator")
        self.assertIn("경관식", result.description)

    def test_05_full_toileting_help_is_severe_indicator(self):
        """Toileting 3 takes priority over both the LTCI table and the ADL estimate."""
        print("\n🏥 UNIT Test 5: Severe indicator (toileting)")

        a = assessment(mobility=2, eating=2, toilet=3, communication=2)
        result = classify(a)

        self.assertEqual(a.adl_score, 230)
        self.assertEqual(result.grade_level, 1)
        self.assertIn("배변 완전도움", result.description)

        # Severe indicator also beats the cognitive-support track
        self.assertEqual(classify(assessment(toilet=3, ltci_grade=6)).rule, "severe_indicator")

    def test_06_cognitive_support_descriptions(self):
        print("\n🏥 UNIT Test 6: Cognitive support grade")

        plain = classify(assessment(ltci_grade=6))
        parkinson = classify(assessment(ltci_grade=6, disease_tags=frozenset({"parkinson"})))
        stroke = classify(assessment(ltci_grade=6, disease_tags=frozenset({"STROKE"})))

        for result in (plain, parkinson, stroke):
            self.assertEqual(result.grade_level, 6)
            self.assertEqual(result.coordinator_matching_priority, "치매 전문 코디네이터")

        self.assertEqual(plain.description, "치매 전문 케어가 필요한 상태")
        self.assertIn("파킨슨 복합", parkinson.description)
        self.assertIn("뇌혈관성 치매", stroke.description)

    def test_07_direct_ltci_mapping(self):
        """All ADL 1 with LTCI 5 -> ADL 100, care grade 5, '5등급 (경증)'."""
        print("\n🏥 UNIT Test 7: Direct LTCI mapping")

        a = assessment(ltci_grade=5)
        result = classify(a)

        self.assertEqual(a.adl_score, 100)
        self.assertEqual(a.care_grade_level, 5)
        self.assertEqual(result.grade_level, 5)
        self.assertEqual(result.grade_name, "5등급 (경증)")
        self.assertFalse(result.is_estimated)

        for grade in range(1, 6):
            self.assertEqual(classify(assessment(ltci_grade=grade)).grade_level, grade)

    def test_08_adl_estimate_without_ltci_grade(self):
        print("\n🏥 UNIT Test 8: ADL estimate")

        a = assessment(mobility=2, eating=2, toilet=2, communication=2)
        result = classify(a)

        self.assertEqual(a.adl_score, 200)
        self.assertEqual(result.grade_level, 3)
        self.assertEqual(result.grade_name, "추정 3등급 (중등증)")
        self.assertTrue(result.is_estimated)
        self.assertIn("장기요양등급 신청 권장", result.description)

    def test_09_pending_and_none_ltci_grades_are_estimated(self):
        print("\n🏥 UNIT Test 9: LTCI 7/8 fall through to the estimate")

        heavy = dict(mobility=3, eating=3, toilet=2, communication=3)  # 270
        for ltci in (7, 8):
            result = classify(assessment(ltci_grade=ltci, **heavy))
            self.assertEqual(result.grade_level, 1)
            self.assertEqual(result.grade_name, "추정 1등급 (최중증)")
            self.assertEqual(result.rule, "adl_estimate")

        self.assertEqual(classify(assessment(mobility=3, eating=2, toilet=2, communication=2)).grade_level, 2)
        self.assertEqual(classify(assessment(mobility=2, eating=1, toilet=2, communication=1)).grade_level, 4)
        self.assertEqual(classify(assessment(mobility=1, eating=1, toilet=2, communication=1)).grade_level, 5)

    def test_10_adl_breakpoints(self):
        print("\n🏥 UNIT Test 10: ADL breakpoints")

        expectations = {
            300: 1, 250: 1, 249: 2, 220: 2, 219: 3,
            180: 3, 179: 4, 140: 4, 139: 5, 100: 5,
        }
        for score, grade in expectations.items():
            self.assertEqual(estimate_grade_from_adl(score), grade, f"ADL {score}")

    def test_11_matching_priority_hint(self):
        print("\n🏥 UNIT Test 11: Coordinator matching priority")

        self.assertEqual(classify(assessment(ltci_grade=1)).coordinator_matching_priority, "의료 전문 코디네이터")
        self.assertEqual(classify(assessment(ltci_grade=2)).coordinator_matching_priority, "의료 전문 코디네이터")
        for grade in (3, 4, 5):
            self.assertEqual(
                classify(assessment(ltci_grade=grade)).coordinator_matching_priority,
                "일반 케어 코디네이터"
            )
        self.assertEqual(
            classify(assessment(care_target_status=1)).coordinator_matching_priority,
            "의료 전문 코디네이터"
        )

    def test_12_rule_order_is_auditable(self):
        names = [rule.name for rule in DEFAULT_RULES]
        self.assertEqual(names, [
            "hospice_high", "hospice_moderate", "fully_dependent",
            "severe_indicator", "cognitive_support", "ltci", "adl_estimate",
        ])

        classifier = CareGradeClassifier()
        self.assertEqual(classifier.matching_rule(assessment(ltci_grade=3)).name, "ltci")

    def test_13_empty_rule_list_still_returns_a_result(self):
        classifier = CareGradeClassifier(rules=[])
        result = classifier.classify(assessment(ltci_grade=1))

        self.assertEqual(result.rule, "adl_estimate")
        self.assertEqual(result.grade_level, 5)

    def test_14_classification_is_deterministic(self):
        a = assessment(mobility=2, eating=3, toilet=2, communication=3, disease_tags=frozenset({"DEMENTIA"}))
        self.assertEqual(classify(a), classify(a))

    def test_15_to_dict_uses_wire_names(self):
        payload = classify(assessment(ltci_grade=2)).to_dict()

        self.assertEqual(payload['gradeLevel'], 2)
        self.assertEqual(payload['gradeName'], "2등급 (중증)")
        self.assertEqual(payload['estimatedMonthlyCost'], "200-400만원 (전문 요양시설)")
        for key in ('recommendedFacilityTypes', 'urgencyLevel', 'medicalSupport', 'coordinatorMatchingPriority'):
            self.assertIn(key, payload)


if __name__ == '__main__':
    unittest.main()
