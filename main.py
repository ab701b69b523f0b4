import logging
import signal
import sys
import json
import argparse
import threading
from dataclasses import asdict

from core.config_loader import load_config
from core.exceptions import MatchingServiceException
from core.grading.batch import regrade_batch, summarize_grades
from core.grading.classifier import classify
from core.matcher.language import LanguageCompatibilityScorer
from core.schemas import parse_assessment, parse_preference

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Set on SIGINT/SIGTERM; running pipelines and batches stop at their next check
stop_event = threading.Event()


def signal_handler(sig, frame):
    logger.info("Shutdown signal received")
    stop_event.set()


def _emit(payload) -> None:
    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _build_context(args):
    from core.app_context import AppContext

    config = load_config(args.config)
    return AppContext.build(config)


def cmd_classify(args) -> int:
    with open(args.input, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, list):
        assessments = [parse_assessment(item) for item in data]
        batch = regrade_batch(assessments, stop_event=stop_event, timeout_seconds=args.timeout)
        _emit({
            'completed': batch.completed,
            'cancelled': batch.cancelled,
            'timedOut': batch.timed_out,
            'executionTime': batch.execution_time,
            'results': {str(k): v.to_dict() for k, v in batch.results.items()},
            'summary': summarize_grades(batch.results),
        })
        return 0 if batch.completed else 1

    assessment = parse_assessment(data)
    result = classify(assessment)
    payload = result.to_dict()
    payload['adlScore'] = assessment.adl_score
    payload['careGradeLevel'] = assessment.care_grade_level
    _emit(payload)
    return 0


def cmd_match(args) -> int:
    preference = parse_preference({
        'preferred_language': args.language,
        'preferred_region': args.region,
        'country_code': args.country,
        'needs_weekend_availability': args.weekend,
        'needs_emergency_availability': args.emergency,
        'needs_professional_consultation': args.professional,
        'min_customer_satisfaction': args.min_satisfaction,
        'max_results': args.max_results,
    })

    ctx = _build_context(args)
    with ctx.pipeline() as pipeline:
        matches = pipeline.match(args.assessment_id, preference, stop_event=stop_event)
    _emit([m.to_dict() for m in matches])
    return 0


def cmd_stats(args) -> int:
    ctx = _build_context(args)
    with ctx.pipeline() as pipeline:
        stats = pipeline.get_matching_statistics()
    _emit(stats.to_dict())
    return 0


def cmd_evict_cache(args) -> int:
    ctx = _build_context(args)
    if args.assessment_id is not None:
        with ctx.pipeline() as pipeline:
            removed = pipeline.invalidate_assessment(args.assessment_id)
        _emit({'assessmentId': args.assessment_id, 'removed': removed})
        return 0

    with ctx.pipeline() as pipeline:
        evicted = pipeline.evict_matching_cache()
    _emit({'evicted': evicted})
    return 0


def cmd_language_gaps(args) -> int:
    from database.uow import matching_uow

    ctx = _build_context(args)
    with matching_uow(
        retry_attempts=ctx.config.database.retry_attempts,
        retry_wait_seconds=ctx.config.database.retry_wait_seconds
    ) as repo:
        skills = repo.find_all_active_language_skills()

    gaps = LanguageCompatibilityScorer().analyze_language_gaps(skills)
    _emit([asdict(gap) for gap in gaps])
    return 0


def cmd_init_db(args) -> int:
    from database.init_db import init_db

    config = load_config(args.config)
    init_db(config.database.url)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Care grade classification and coordinator matching")
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to config.yaml')
    subparsers = parser.add_subparsers(dest='command', required=True)

    p = subparsers.add_parser('classify', help='Grade one assessment, or a JSON list of assessments')
    p.add_argument('--input', required=True, help='JSON file with an assessment object or list')
    p.add_argument('--timeout', type=float, default=None, help='Deadline in seconds for a batch')
    p.set_defaults(func=cmd_classify)

    p = subparsers.add_parser('match', help='Rank coordinators for a stored assessment')
    p.add_argument('--assessment-id', type=int, required=True)
    p.add_argument('--language', type=str, default=None, help='Preferred language code, e.g. EN')
    p.add_argument('--region', type=str, default=None, help='Preferred working region')
    p.add_argument('--country', type=str, default=None, help='Country of residence code, e.g. US')
    p.add_argument('--weekend', action='store_true', help='Require weekend availability')
    p.add_argument('--emergency', action='store_true', help='Require emergency availability')
    p.add_argument('--professional', action='store_true', help='Require professional-level language consultation')
    p.add_argument('--min-satisfaction', type=float, default=3.0)
    p.add_argument('--max-results', type=int, default=20)
    p.set_defaults(func=cmd_match)

    p = subparsers.add_parser('stats', help='Show matching statistics')
    p.set_defaults(func=cmd_stats)

    p = subparsers.add_parser('evict-cache', help='Evict cached match results')
    p.add_argument('--assessment-id', type=int, default=None, help='Only evict results for this assessment')
    p.set_defaults(func=cmd_evict_cache)

    p = subparsers.add_parser('language-gaps', help='Language demand vs. coordinator supply')
    p.set_defaults(func=cmd_language_gaps)

    p = subparsers.add_parser('init-db', help='Create database tables')
    p.set_defaults(func=cmd_init_db)

    return parser


def main(argv=None) -> int:
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except MatchingServiceException as e:
        logger.error(f"{args.command} failed: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
