"""
Rich Output Utilities
=====================

Terminal rendering for Decision Forge using the Rich library.

Computation modules never print; the CLI hands their results to the render_*
functions here.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.rule import Rule
from rich.status import Status
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from decisionforge.engine import ScenarioResult
from decisionforge.history import SyncReport
from decisionforge.models import StrategyMode
from decisionforge.templates import TemplateRegistry


# =============================================================================
# Color Scheme & Theme
# =============================================================================

@dataclass(frozen=True)
class ForgeColors:
    """Decision Forge color palette using hex for truecolor terminal support."""
    ink: str = "#E6E6E6"       # primary text
    dim: str = "#9AA4B2"       # muted text
    forge: str = "#F59E0B"     # warm accent
    arc: str = "#22D3EE"       # cool accent
    steel: str = "#94A3B8"     # secondary accent
    ok: str = "#22C55E"        # success green
    warn: str = "#FBBF24"      # warning yellow
    err: str = "#EF4444"       # error red


def forge_theme(colors: ForgeColors = ForgeColors()) -> Theme:
    """
    Rich Theme for the Decision Forge CLI.

    Style names are semantic so you can use them everywhere:
      console.print("...", style="df.ok")
    """
    return Theme(
        {
            "df.banner": f"bold {colors.arc}",
            "df.subtitle": f"{colors.dim}",
            "df.border": f"{colors.arc}",
            "df.accent": f"bold {colors.forge}",
            "df.muted": f"{colors.dim}",
            "df.text": f"{colors.ink}",

            # Status
            "df.ok": f"bold {colors.ok}",
            "df.warn": f"bold {colors.warn}",
            "df.err": f"bold {colors.err}",
            "df.info": f"{colors.arc}",

            # Data display
            "df.key": f"{colors.steel}",
            "df.value": f"{colors.ink}",
            "df.number": f"bold {colors.forge}",

            # Modes
            "df.mode.connected": f"bold {colors.arc}",
            "df.mode.local": f"bold {colors.forge}",

            # Risk levels
            "df.risk.low": f"bold {colors.ok}",
            "df.risk.medium": f"bold {colors.warn}",
            "df.risk.high": f"bold {colors.err}",

            "df.table.header": f"bold {colors.arc}",
        }
    )


# =============================================================================
# Unicode / ASCII Fallbacks
# =============================================================================

def _can_use_unicode() -> bool:
    """Check if the terminal can handle Unicode characters."""
    if os.name == 'nt':
        try:
            encoding = sys.stdout.encoding or 'utf-8'
            "✓✗•".encode(encoding)
            return True
        except (UnicodeEncodeError, LookupError, AttributeError):
            return False
    return True


_UNICODE_ICONS = {
    "check": "✓",
    "cross": "✗",
    "warning": "⚠️",
    "info": "ℹ",
    "bullet": "•",
    "arrow_right": "→",
    "lock": "\U0001F512",
}

_ASCII_ICONS = {
    "check": "[OK]",
    "cross": "[X]",
    "warning": "[!]",
    "info": "[i]",
    "bullet": "-",
    "arrow_right": "->",
    "lock": "[APPROVAL]",
}

_ICONS = _UNICODE_ICONS if _can_use_unicode() else _ASCII_ICONS


def icon(name: str) -> str:
    """Get an icon by name, using ASCII fallback if needed."""
    return _ICONS.get(name, "")


# =============================================================================
# Global Console Instance
# =============================================================================

console = Console(theme=forge_theme())


# =============================================================================
# Basic Message Functions
# =============================================================================

def print_success(message: str) -> None:
    """Print a success message with checkmark."""
    console.print(f"[df.ok]{icon('check')} {message}[/]")


def print_error(message: str) -> None:
    """Print an error message with X."""
    console.print(f"[df.err]{icon('cross')} {message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[df.warn]{icon('warning')} {message}[/]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[df.info]{icon('info')} {message}[/]")


def print_muted(message: str) -> None:
    """Print muted/secondary text."""
    console.print(f"[df.muted]{message}[/]")


def print_header(title: str, style: str = "df.accent") -> None:
    """Print a prominent section header with rule lines."""
    console.print()
    console.print(Rule(f"[{style}]{title}[/]", style=style))
    console.print()


def print_subheader(title: str, style: str = "df.info") -> None:
    """Print a smaller subsection header."""
    console.print(f"\n[{style}]{icon('arrow_right')} {title}[/]")


def print_list(items: Sequence[str], *, numbered: bool = False, indent: int = 2) -> None:
    """Print a bulleted or numbered list."""
    prefix = " " * indent
    for i, item in enumerate(items, 1):
        marker = f"{i}." if numbered else icon("bullet")
        console.print(f"{prefix}[df.accent]{marker}[/] [df.text]{item}[/]")


def print_key_value_table(
    data: Dict[str, Any],
    *,
    title: Optional[str] = None,
    border_style: str = "df.border",
) -> None:
    """Print multiple key-value pairs in a clean table format."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="df.key")
    table.add_column("Value", style="df.value")

    for key, value in data.items():
        table.add_row(key, str(value))

    if title:
        console.print(Panel(table, title=f"[bold]{title}[/]", border_style=border_style))
    else:
        console.print(table)


def create_table(
    *,
    title: Optional[str] = None,
    columns: Optional[List[str]] = None,
    show_header: bool = True,
    border_style: str = "df.border",
    header_style: str = "df.table.header",
) -> Table:
    """Create a styled Rich Table with the Decision Forge theme."""
    table = Table(
        title=title,
        show_header=show_header,
        header_style=header_style,
        border_style=border_style,
        title_style="df.accent",
    )
    if columns:
        for col in columns:
            table.add_column(col)
    return table


def print_panel(
    content: Union[str, Text],
    *,
    title: Optional[str] = None,
    border_style: str = "df.border",
    padding: tuple = (1, 2),
) -> None:
    """Print content in a styled panel."""
    console.print(Panel(
        content,
        title=f"[bold]{title}[/]" if title else None,
        border_style=border_style,
        padding=padding,
    ))


@contextmanager
def spinner(message: str, *, style: str = "df.accent") -> Iterator[Status]:
    """
    Context manager for showing a spinner during long operations.

    Usage:
        with spinner("Processing scenarios..."):
            run()
    """
    with console.status(f"[{style}]{message}[/]", spinner="dots") as status:
        yield status


def print_banner(*, subtitle: str = "Decision Synthesis Engine", version: Optional[str] = None) -> None:
    """Print the Decision Forge banner."""
    footer = subtitle.strip()
    if version:
        footer = f"{footer}  {icon('bullet')}  {version.strip()}"
    console.print(Panel(
        Text.assemble(Text("DECISION FORGE", style="df.banner"), "\n", Text(footer, style="df.subtitle")),
        border_style="df.border",
        padding=(1, 2),
    ))


# =============================================================================
# Decision Rendering
# =============================================================================

def _risk_markup(level: str) -> str:
    return f"[df.risk.{level}]{level.upper()}[/]"


def render_strategy_comparison(result: ScenarioResult) -> None:
    """Print the connected and local strategies side by side."""
    connected = result.strategies.get(StrategyMode.CONNECTED)
    local = result.strategies.get(StrategyMode.LOCAL)
    if connected is None or local is None:
        return

    table = create_table(title="Strategy Comparison", columns=["", "Connected", "Local"])
    table.add_row(
        "Confidence",
        f"[df.number]{connected.confidence * 100:.1f}%[/]",
        f"[df.number]{local.confidence * 100:.1f}%[/]",
    )
    table.add_row("Steps", str(len(connected.steps)), str(len(local.steps)))
    table.add_row("Advantages", "\n".join(connected.advantages), "\n".join(local.advantages))
    table.add_row("Limitations", "\n".join(connected.limitations), "\n".join(local.limitations))
    table.add_row("Summary", connected.summary, local.summary)
    console.print(table)


def render_result(result: ScenarioResult, *, show_strategies: bool = True) -> None:
    """Print one decision cycle: outcome, recommendation and governance fields."""
    decision = result.decision
    print_header(decision.scenario_ref)

    if not result.succeeded:
        print_error(f"{decision.failure_kind}: {decision.failure_reason}")
        print_muted(f"Decision {decision.decision_id} recorded as failed")
        return

    if show_strategies:
        render_strategy_comparison(result)

    recommendation = result.recommendation
    print_panel(recommendation.text, title="Recommendation")

    print_key_value_table({
        "Decision": decision.decision_id,
        "Trace": decision.trace_id,
        "Confidence": f"{decision.confidence * 100:.1f}%",
        "Risk": f"{decision.risk_score:.2f} ({decision.risk_assessment})",
        "Approval": "REQUIRED" if decision.approval_required else "not required",
        "Branch strategy": decision.branch_strategy,
        "Deployment plan": decision.deployment_plan,
        "Environment": decision.environment_handling,
        "Execution": f"{decision.execution_time_ms} ms",
    })
    console.print(f"Risk level: {_risk_markup(decision.risk_assessment)}")
    if decision.approval_required:
        print_warning(f"{icon('lock')} Human approval required before acting on this decision")

    if result.risk and result.risk.factors:
        print_subheader("Risk factors")
        print_list(result.risk.factors)

    print_subheader("Insights")
    print_list(recommendation.insights)

    if recommendation.patterns_applied:
        print_subheader("Patterns applied")
        print_list(sorted(recommendation.patterns_applied))


def render_sync_report(report: SyncReport) -> None:
    """Print the aggregate sync report."""
    print_header("Sync Report")
    print_key_value_table({
        "Total decisions": report.total_decisions,
        "Completed": report.completed_decisions,
        "Failed": report.failed_decisions,
        "Total traces": report.total_traces,
        "Patterns loaded": report.patterns_loaded,
        "Average confidence": f"{report.avg_confidence * 100:.1f}%",
    }, title="Decision History")

    table = create_table(title="Sync Capabilities", columns=["Direction", "Supported", "Mechanism", "Confidence", "Requirements"])
    for name, cap in report.sync_capabilities.items():
        table.add_row(
            name.replace("_", " "),
            "yes" if cap.supported else "no",
            cap.mechanism,
            f"[df.number]{cap.confidence * 100:.0f}%[/]",
            ", ".join(cap.requirements),
        )
    console.print(table)

    print_subheader("Recommendations")
    print_list(report.recommendations, numbered=True)


def render_store_stats(stats: dict) -> None:
    """Print aggregate statistics over the stored decisions."""
    print_header("Stored Decisions")
    print_key_value_table({
        "Total decisions": stats["total_decisions"],
        "Average confidence": f"{stats['avg_confidence'] * 100:.1f}%",
        "Approval required": stats["approval_required"],
        "Total traces": stats["total_traces"],
        "Patterns stored": stats["patterns_stored"],
    })

    if stats["by_status"]:
        table = create_table(columns=["Status", "Count"])
        for status, count in sorted(stats["by_status"].items()):
            table.add_row(status, f"[df.number]{count}[/]")
        console.print(table)

    if stats["by_risk"]:
        table = create_table(columns=["Risk", "Count"])
        for level, count in sorted(stats["by_risk"].items()):
            table.add_row(_risk_markup(level), f"[df.number]{count}[/]")
        console.print(table)


def render_decision_records(records: Sequence[dict]) -> None:
    """Print stored decision records as a table."""
    table = create_table(columns=["Decision", "Status", "Confidence", "Risk", "Approval", "Question"])
    for record in records:
        table.add_row(
            record["id"],
            record["status"],
            f"{record['confidence'] * 100:.1f}%",
            _risk_markup(record["risk_assessment"]),
            "yes" if record["approval_required"] else "no",
            record["question"],
        )
    console.print(table)


def render_templates(registry: TemplateRegistry) -> None:
    """Print the registered strategy template kinds."""
    table = create_table(title="Strategy Templates", columns=["Kind", "Modes", "Flags", "Description"])
    for kind in registry.kinds():
        template = registry.get(kind)
        flags = []
        if template.high_sensitivity:
            flags.append("high-sensitivity")
        if template.creates_repository:
            flags.append("creates-repository")
        table.add_row(
            kind,
            ", ".join(mode.value for mode in template.modes),
            ", ".join(flags) or "-",
            template.description,
        )
    console.print(table)


# =============================================================================
# Logging Integration
# =============================================================================

def setup_rich_logging(level: int = logging.INFO) -> None:
    """
    Configure Python logging to use Rich for log output.

    Usage:
        setup_rich_logging()
        logging.info("This will be pretty!")
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(
            console=console,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )],
    )
