# core/aggregator.py
from collections import Counter
from datetime import datetime
from typing import Dict, List, Sequence

from models.results import CombinationResult, SortStatus, UrlStatus, Verdict

REVIEW_VERDICTS = (Verdict.PASSED_AMBIGUOUS_MESSAGE, Verdict.PASSED_NO_VISIBLE_TILES)


def _pass_rate(passed: int, total: int) -> int:
    return round(passed / total * 100) if total else 0


def summarize_url(combinations: Sequence[CombinationResult]) -> Dict:
    """Counts, tile statistics and sort statistics for one URL's combinations."""
    total = len(combinations)
    passed = sum(1 for c in combinations if c.passed)
    verdicts = Counter(c.verdict.value for c in combinations)
    # combinations never reached have no tile observation to count
    observed = [c for c in combinations if c.tile_observation.observed]
    tile_counts = [c.tile_observation.visible_count for c in observed]
    with_message = [c for c in combinations if c.tile_observation.has_no_results_message]
    sort_statuses = Counter(c.sort_observation.status.value for c in combinations)
    with_controls = [c.sort_observation.sort_controls_found for c in combinations
                     if c.sort_observation.sort_controls_found > 0]

    summary = {
        'total_tests': total,
        'passed': passed,
        'failed': total - passed,
        'pass_rate': _pass_rate(passed, total),
    }
    tile_summary = {
        'combos_observed': len(observed),
        'total_tiles': sum(tile_counts),
        'max_tiles': max(tile_counts, default=0),
        'min_tiles': min(tile_counts, default=0),
        'average_tiles': round(sum(tile_counts) / len(observed), 1) if observed else 0,
        'combos_with_tiles': sum(1 for count in tile_counts if count > 0),
        'combos_with_no_results_message': len(with_message),
        'combos_with_correct_no_results_message': verdicts.get(Verdict.PASSED_NO_RESULTS_EXPECTED.value, 0),
        'verdicts': {verdict.value: verdicts.get(verdict.value, 0) for verdict in Verdict},
        'strategies_used': sorted({c.tile_observation.strategy for c in combinations if c.tile_observation.strategy}),
    }
    sort_summary = {
        'statuses': {status.value: sort_statuses.get(status.value, 0) for status in SortStatus},
        'combos_with_sort_controls': len(with_controls),
        'average_sort_controls': round(sum(with_controls) / len(with_controls), 1) if with_controls else 0,
    }
    return {'summary': summary, 'tile_summary': tile_summary, 'sort_summary': sort_summary}


def url_status(combinations: Sequence[CombinationResult]) -> UrlStatus:
    if not combinations:
        return UrlStatus.SKIPPED
    return UrlStatus.PASSED if all(c.passed for c in combinations) else UrlStatus.FAILED


def summarize_run(run_context) -> Dict:
    """Run level report: totals, retry statistics, distributions and review flags."""
    results = run_context.results
    combinations: List[CombinationResult] = [c for r in results for c in r.combinations]
    per_url = summarize_url(combinations)
    errored = [r for r in results if r.status is UrlStatus.ERROR]
    failed = run_context.failed_tests

    if errored or failed:
        overall_status = 'FAILED'
    elif run_context.total_tests:
        overall_status = 'PASSED'
    else:
        overall_status = 'NO_TESTS'

    finished_at = run_context.finished_at or datetime.now()
    review_flags = []
    for result in results:
        for combination in result.combinations:
            if combination.verdict in REVIEW_VERDICTS:
                review_flags.append({
                    'url': result.test_case.url,
                    'combination': f'Combo {combination.ordinal}',
                    'verdict': combination.verdict.value,
                    'message': combination.tile_observation.message_text,
                })

    return {
        'execution_id': run_context.execution_id,
        'started_at': run_context.started_at.isoformat(),
        'finished_at': finished_at.isoformat(),
        'duration_seconds': round((finished_at - run_context.started_at).total_seconds(), 1),
        'total_urls': len(results),
        'urls_by_status': dict(Counter(r.status.value for r in results)),
        'total_tests': run_context.total_tests,
        'passed': run_context.passed_tests,
        'failed': failed,
        'pass_rate': run_context.pass_rate,
        'overall_status': overall_status,
        'retry_statistics': run_context.retry_state.snapshot(),
        'stuck_detections': run_context.monitor.detections,
        'hard_restarts': run_context.monitor.hard_restarts,
        'browser_distribution': dict(Counter(r.test_case.browser for r in results)),
        'device_distribution': dict(Counter(
            r.test_case.mobile_device if r.test_case.device != 'desktop' else 'desktop' for r in results)),
        'tile_summary': per_url['tile_summary'],
        'sort_summary': per_url['sort_summary'],
        'review_flags': {
            'ambiguous_message': per_url['tile_summary']['verdicts'][Verdict.PASSED_AMBIGUOUS_MESSAGE.value],
            'no_visible_tiles': per_url['tile_summary']['verdicts'][Verdict.PASSED_NO_VISIBLE_TILES.value],
            'combinations': review_flags,
        },
    }
