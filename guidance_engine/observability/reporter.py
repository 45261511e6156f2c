"""
Render validation reports and recommendation results for humans and tools.

Formats:
- markdown: headings plus GitHub-flavored tables
- text: plain tables for terminals
- json: stable, key-sorted JSON for other programs

Uses tabulate for table formatting. Output contains no timestamps, so
rendering the same report twice produces identical text.
"""
import json
from typing import Any, List, Optional

from tabulate import tabulate

from ..decisioning.explainer import RecommendationExplainer
from ..decisioning.recommender import RecommendationResult
from ..validation.checklist import ChecklistStatus
from ..validation.validator import Report


FORMATS = ('text', 'markdown', 'json')

_CHECK_SYMBOLS = {
    ChecklistStatus.PASS: "✓",
    ChecklistStatus.FAIL: "✗",
    ChecklistStatus.NEEDS_MANUAL_REVIEW: "?",
}


def to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)


class ReportRenderer:
    """
    Renders engine output as Markdown, plain text or JSON.

    Markdown and text share the same layout; only the table style and
    heading markers differ.
    """

    def __init__(self, explainer: Optional[RecommendationExplainer] = None):
        self.explainer = explainer or RecommendationExplainer()

    def render_report(self, report: Report, fmt: str = 'text') -> str:
        """
        Render a validation report.

        Args:
            report: Report from the validation engine
            fmt: One of FORMATS

        Returns:
            Rendered report as string
        """
        if fmt == 'json':
            return to_json(report.to_dict())
        markdown = self._check_format(fmt)
        tablefmt = "github" if markdown else "simple"
        lines: List[str] = []

        lines.append(self._heading(f"Validation Report: {report.domain}", 1, markdown))
        lines.append(f"Overall status: {report.overall_status.value}")
        lines.append("")

        if report.error is not None:
            lines.append(f"Error [{report.error.code}]: {report.error.message}")
            return "\n".join(lines)

        lines.append(self._heading("Guardrail Rules", 2, markdown))
        if report.rule_results:
            rule_rows = []
            for result in report.rule_results:
                if result.passed:
                    status = "✓"
                elif result.blocking:
                    status = "✗"
                else:
                    status = "!"
                rule_rows.append([status, result.severity.value, result.rule.rule_id, result.message])
            lines.append(tabulate(
                rule_rows, headers=["Status", "Severity", "Rule", "Details"], tablefmt=tablefmt
            ))
        else:
            lines.append("No guardrail rules defined.")
        lines.append("")

        lines.append(self._heading("Checklist", 2, markdown))
        if report.checklist_results:
            check_rows = []
            for result in report.checklist_results:
                check_rows.append([
                    _CHECK_SYMBOLS[result.status],
                    result.item.category,
                    result.item.question,
                    result.note or ""
                ])
            lines.append(tabulate(
                check_rows, headers=["Status", "Category", "Question", "Note"], tablefmt=tablefmt
            ))
        else:
            lines.append("No checklist items defined.")
        lines.append("")

        summary = [
            ["Violations (MUST/NEVER)", len(report.violations)],
            ["Warnings (SHOULD)", len(report.warnings)],
            ["Failed checks", len(report.failed_checks)],
            ["Needs manual review", len(report.manual_review)],
        ]
        lines.append(self._heading("Summary", 2, markdown))
        lines.append(tabulate(summary, headers=["Metric", "Count"], tablefmt=tablefmt))
        lines.append("")

        return "\n".join(lines)

    def render_recommendation(self, result: RecommendationResult, fmt: str = 'text') -> str:
        """Render a recommendation with its explainability trace."""
        if fmt == 'json':
            return to_json(self.explainer.explain_with_context(result))
        markdown = self._check_format(fmt)
        tablefmt = "github" if markdown else "simple"
        lines: List[str] = []

        lines.append(self._heading(f"Recommendation: {result.domain}", 1, markdown))

        if result.error is not None:
            lines.append(f"Error [{result.error.code}]: {result.error.message}")
            return "\n".join(lines)

        rec = result.recommendation
        lines.append(f"Recommended: {rec.label}")
        if rec.rationale:
            lines.append(f"Rationale: {rec.rationale}")
        lines.append("")
        lines.append(self.explainer.explain(result))
        lines.append("")

        if rec.caveats:
            lines.append(self._heading("Caveats", 2, markdown))
            for caveat in rec.caveats:
                lines.append(f"- {caveat}")
            lines.append("")

        if result.path:
            lines.append(self._heading("Decision Path", 2, markdown))
            path_rows = [
                [index, step.node_path, step.predicate.label, "true" if step.outcome else "false"]
                for index, step in enumerate(result.path, start=1)
            ]
            lines.append(tabulate(
                path_rows, headers=["Step", "Node", "Condition", "Outcome"], tablefmt=tablefmt
            ))
            lines.append("")

        return "\n".join(lines)

    def render_domains(self, registry, fmt: str = 'text') -> str:
        """Summarize the domains in a registry."""
        rows = []
        for entry in registry.entries():
            stats = entry.stats
            rows.append({
                'domain': entry.domain,
                'tree': entry.tree.name,
                'branches': stats.branches if stats else None,
                'leaves': stats.leaves if stats else None,
                'rules': len(entry.rules),
                'checklist_items': len(entry.checklist),
                'source': entry.source
            })

        if fmt == 'json':
            return to_json(rows)
        markdown = self._check_format(fmt)
        if not rows:
            return "No domains registered."
        table = [
            [r['domain'], r['tree'], r['branches'], r['leaves'], r['rules'], r['checklist_items']]
            for r in rows
        ]
        return tabulate(
            table,
            headers=["Domain", "Tree", "Branches", "Leaves", "Rules", "Checks"],
            tablefmt="github" if markdown else "simple"
        )

    @staticmethod
    def _check_format(fmt: str) -> bool:
        if fmt not in FORMATS:
            raise ValueError(f"Unknown output format '{fmt}' (expected one of {', '.join(FORMATS)})")
        return fmt == 'markdown'

    @staticmethod
    def _heading(text: str, level: int, markdown: bool) -> str:
        if markdown:
            return f"{'#' * level} {text}"
        return text
