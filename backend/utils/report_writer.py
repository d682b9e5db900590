# utils/report_writer.py
import json
import logging
import os
from datetime import datetime
from html import escape
from typing import Dict

from config.settings import Config
from core.aggregator import summarize_run

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    'PASSED': '#28a745',
    'FAILED': '#dc3545',
    'ERROR': '#fd7e14',
    'SKIPPED': '#6c757d',
    'NO_TESTS': '#6c757d',
}


def build_report(run_context) -> Dict:
    return {
        'summary': summarize_run(run_context),
        'results': [result.to_dict() for result in run_context.results],
    }


def render_text(report: Dict, paths: Dict = None) -> str:
    s = report['summary']
    tiles = s['tile_summary']
    sort = s['sort_summary']
    lines = [
        f"DROPDOWN TEST REPORT - {s['finished_at']}",
        '=' * 64,
        f"Execution ID: {s['execution_id']}",
        f"Start Time: {s['started_at']}",
        f"End Time: {s['finished_at']}",
        f"Total Duration: {s['duration_seconds']} seconds",
        '=' * 64,
        'TEST RESULTS:',
        f"Total URLs Tested: {s['total_urls']}",
        f"Total Combinations: {s['total_tests']}",
        f"Passed: {s['passed']}",
        f"Failed: {s['failed']}",
        f"Pass Rate: {s['pass_rate']}%",
        f"Overall Status: {s['overall_status']}",
        '=' * 64,
        'NOTE: "No visible tiles" is not a failure. Only technical errors fail a combination.',
        '=' * 64,
        'TILE STATISTICS:',
        f"Total Tiles Found: {tiles['total_tiles']}",
        f"Average Tiles per Combination: {tiles['average_tiles']}",
        f"Tile Range: {tiles['min_tiles']} - {tiles['max_tiles']}",
        f"Combos with Tiles: {tiles['combos_with_tiles']}",
        f"Combos with \"No Results\" Message: {tiles['combos_with_no_results_message']}",
        f"Combos with CORRECT \"No Results\" Message: {tiles['combos_with_correct_no_results_message']}",
        f"Combos to Review (ambiguous message): {s['review_flags']['ambiguous_message']}",
        f"Combos to Review (no visible tiles): {s['review_flags']['no_visible_tiles']}",
        '=' * 64,
        'SORT-BY STATISTICS:',
    ]
    lines += [f"{status}: {count}" for status, count in sort['statuses'].items()]
    lines += [
        f"Combos with Sort Controls: {sort['combos_with_sort_controls']}",
        f"Average Sort Controls: {sort['average_sort_controls']}",
        '=' * 64,
        'RETRY STATISTICS:',
        f"Stuck Recoveries: {s['retry_statistics']['stuck_recovery']}",
        f"Hard Restarts: {s['hard_restarts']}",
    ]
    lines += [f"{operation} retries: {count}" for operation, count in s['retry_statistics']['total'].items()]
    lines.append('=' * 64)
    lines.append('URLS:')
    for result in report['results']:
        summary = result['summary']
        lines.append(f"[{result['status']}] {result['url']} - {summary.get('passed', 0)}/"
                     f"{summary.get('total_tests', 0)} passed")
        if result['error']:
            lines.append(f"    Error: {result['error']}")
        for note in result['notes']:
            lines.append(f"    Note: {note}")
    if paths:
        lines.append('=' * 64)
        lines.append('FILES:')
        lines += [f"{name}: {path}" for name, path in paths.items()]
    return '\n'.join(lines) + '\n'


def _card(title: str, value, color: str = '#212529') -> str:
    return (f'<div class="card"><div class="card-title">{escape(title)}</div>'
            f'<div class="card-value" style="color: {color}">{escape(str(value))}</div></div>')


def _table(rows, headers) -> str:
    head = ''.join(f'<th>{escape(h)}</th>' for h in headers)
    body = ''.join('<tr>' + ''.join(f'<td>{escape(str(cell))}</td>' for cell in row) + '</tr>' for row in rows)
    return f'<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'


def render_html(report: Dict) -> str:
    s = report['summary']
    tiles = s['tile_summary']
    overall_color = STATUS_COLORS.get(s['overall_status'], '#6c757d')
    cards = ''.join([
        _card('Total Tests', s['total_tests']),
        _card('Passed', s['passed'], STATUS_COLORS['PASSED']),
        _card('Failed', s['failed'], STATUS_COLORS['FAILED']),
        _card('Pass Rate', f"{s['pass_rate']}%", overall_color),
        _card('Total Tiles', tiles['total_tiles']),
        _card('Average Tiles', tiles['average_tiles']),
        _card('Correct "No Results"', tiles['combos_with_correct_no_results_message']),
        _card('To Review', s['review_flags']['ambiguous_message'] + s['review_flags']['no_visible_tiles']),
    ])
    sections = []
    for result in report['results']:
        color = STATUS_COLORS.get(result['status'], '#6c757d')
        rows = [
            (c['name'], ' > '.join(e['label'] or e['value'] for e in c['selection']), c['verdict'],
             c['tile_observation']['visible_count'], c['sort_observation']['status'], c['error'] or c['note'] or '')
            for c in result['combinations']
        ]
        notes = ''.join(f'<p class="note">{escape(note)}</p>' for note in result['notes'])
        error = f'<p class="error">{escape(result["error"])}</p>' if result['error'] else ''
        sections.append(
            f'<section><h2><span class="badge" style="background: {color}">{escape(result["status"])}</span> '
            f'{escape(result["url"])}</h2><p>{escape(result["description"] or "")} | '
            f'{escape(result["browser"])} | {escape(result["device"])} | {result["dropdowns"]} dropdowns</p>'
            f'{error}{notes}'
            f'{_table(rows, ["Combination", "Selection", "Verdict", "Visible Tiles", "Sort", "Details"])}'
            f'</section>'
        )
    retries = _table(sorted(s['retry_statistics']['total'].items()), ['Operation', 'Retries'])
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Dropdown Test Report - {escape(s['execution_id'])}</title>
<style>
body {{ font-family: sans-serif; margin: 2rem; color: #212529; }}
.cards {{ display: flex; flex-wrap: wrap; gap: 1rem; }}
.card {{ border: 1px solid #dee2e6; border-radius: 6px; padding: 1rem; min-width: 140px; }}
.card-title {{ font-size: .85rem; color: #6c757d; }}
.card-value {{ font-size: 2rem; font-weight: bold; }}
.badge {{ color: #fff; padding: .2rem .5rem; border-radius: 4px; font-size: .9rem; }}
table {{ border-collapse: collapse; width: 100%; margin-top: .5rem; }}
th, td {{ border: 1px solid #dee2e6; padding: .3rem .5rem; text-align: left; font-size: .9rem; }}
.error {{ color: #dc3545; }}
.note {{ color: #856404; }}
</style>
</head>
<body>
<h1>Dropdown Test Report</h1>
<p>Execution {escape(s['execution_id'])} | {escape(s['started_at'])} to {escape(s['finished_at'])} |
<strong style="color: {overall_color}">{escape(s['overall_status'])}</strong></p>
<div class="cards">{cards}</div>
<h2>Retry Statistics</h2>
{retries}
{''.join(sections)}
</body>
</html>
"""


def write_reports(run_context, config=Config) -> Dict:
    """Write JSON, text and HTML reports; return the report with the written paths under 'files'."""
    report = build_report(run_context)
    os.makedirs(config.REPORT_DIR, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    paths = {
        'json': os.path.join(config.REPORT_DIR, f'dropdown-test-{timestamp}.json'),
        'text': os.path.join(config.REPORT_DIR, f'dropdown-summary-{timestamp}.txt'),
        'html': os.path.join(config.REPORT_DIR, f'dropdown-test-{timestamp}.html'),
    }
    with open(paths['json'], 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2, ensure_ascii=False, default=str)
    with open(paths['text'], 'w', encoding='utf-8') as f:
        f.write(render_text(report, {'JSON Report': paths['json'], 'HTML Report': paths['html']}))
    with open(paths['html'], 'w', encoding='utf-8') as f:
        f.write(render_html(report))
    logger.info(f"Reports saved to: {config.REPORT_DIR}/")
    logger.info(f"JSON Report: {paths['json']}")
    logger.info(f"HTML Report: {paths['html']}")
    report['files'] = paths
    return report
