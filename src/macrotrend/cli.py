"""CLI interface using Typer."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import date, timedelta
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from macrotrend.analytics import (
    AnalyticsConfig,
    DailyRecord,
    adherence,
    align,
    analyze_day_patterns,
    analyze_streaks,
    correlate,
    detect_anomalies,
    detect_metabolic_adaptation,
    detect_plateau,
    ewma,
    generate_insights,
    intake_vs_weight_change,
    latest_per_day,
    macro_consistency,
    next_week_focus,
    predict_future,
    present_values,
    progress_for_goal,
    project_goal_timeline,
    weighted_linear_regression,
)
from macrotrend.analytics.correlation import INTAKE_LABELS
from macrotrend.analytics.ema import estimate_weekly_change
from macrotrend.app_logging import configure_logging
from macrotrend.cache import ResultCache, make_key
from macrotrend.config.settings import Settings, get_settings
from macrotrend.loader import AnalysisInput, LoaderError, load_input

app = typer.Typer(
    help="Trend, consistency, adherence and goal analytics for nutrition logs",
    no_args_is_help=True,
)
console = Console()

# Shared across commands run in one process
_cache = ResultCache()

GRADE_STYLES = {"A": "green", "B": "cyan", "C": "yellow", "D": "red", "F": "red"}
STATUS_STYLES = {
    "ahead": "green",
    "on_track": "green",
    "behind": "yellow",
    "stalled": "red",
}
INSIGHT_STYLES = {
    "warning": "red",
    "achievement": "magenta",
    "positive": "green",
    "tip": "cyan",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Analyze exported nutrition and weight logs."""
    configure_logging(verbose)


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2, default=str)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def fail(message: str, command: str, json_output: bool) -> NoReturn:
    """Report an error in the requested format and exit with code 1."""
    if json_output:
        output_json({"success": False, "command": command, "errors": [message]})
    else:
        console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


def resolve_today(today_str: Optional[str], command: str, json_output: bool) -> date:
    if today_str is None:
        return date.today()
    try:
        return date.fromisoformat(today_str)
    except ValueError:
        fail(f"Invalid --today date: {today_str} (expected YYYY-MM-DD)", command, json_output)


def load_settings(config_path: Optional[Path], command: str, json_output: bool) -> Settings:
    try:
        if config_path is None:
            return get_settings()
        if not config_path.exists():
            fail(f"Config file not found: {config_path}", command, json_output)
        return Settings.load(config_path)
    except ValueError as e:
        fail(f"Invalid config: {e}", command, json_output)


def wants_json(json_flag: Optional[bool], settings: Settings) -> bool:
    """An explicit --json/--table wins over the configured default."""
    if json_flag is not None:
        return json_flag
    return settings.defaults.output_format == "json"


def load_data(path: Path, command: str, json_output: bool) -> AnalysisInput:
    try:
        return load_input(path)
    except LoaderError as e:
        fail(str(e), command, json_output)


def describe_remaining(remaining: float, direction: int) -> str:
    if direction == 0 or abs(remaining) < 0.05:
        return "at goal"
    return f"{abs(remaining):.1f} to {'lose' if direction < 0 else 'gain'}"


def in_window(records: list[Any], days: int, today: date) -> list[Any]:
    """Latest record per day within the ``days`` ending at ``today``."""
    start = today - timedelta(days=days - 1)
    return [r for r in latest_per_day(records) if start <= r.date <= today]


def _fmt(value: Optional[float], digits: int = 1) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


# ============================================================================
# Trend
# ============================================================================


def compute_trend(
    data: AnalysisInput, days: int, today: date, config: AnalyticsConfig
) -> Optional[dict]:
    """EWMA trend plus regression, plateau and anomaly diagnostics."""
    points = align(data.weights, days, dense_fill=True, today=today)
    result = ewma(
        [p.value for p in points],
        window_size=config.ewma.window_size,
        band_multiplier=config.ewma.band_multiplier,
        min_points=config.ewma.min_points,
    )
    if result is None:
        return None

    trend_points = [(p, s) for p, s in zip(points, result.smoothed) if s is not None]
    first, last = trend_points[0], trend_points[-1]
    elapsed = (last[0].date - first[0].date).days
    weekly = estimate_weekly_change(first[1], last[1], elapsed) if elapsed > 0 else 0.0

    values = present_values(points)
    present_dates = [p.date for p in points if p.value is not None]
    regression = weighted_linear_regression(values)
    plateau = detect_plateau(values)
    anomalies = detect_anomalies(values, config.insights.anomaly_threshold, present_dates)
    forecast = predict_future(values)

    return {
        "points": [
            {
                "date": p.date.isoformat(),
                "label": p.label,
                "weight": p.value,
                "trend": result.smoothed[i],
                "upper": result.upper_band[i],
                "lower": result.lower_band[i],
            }
            for i, p in enumerate(points)
        ],
        "sigma": result.sigma,
        "current_trend": last[1],
        "weekly_change": weekly,
        "regression": asdict(regression) if regression else None,
        "plateau": asdict(plateau),
        "anomalies": [asdict(a) for a in anomalies.anomalies],
        "forecast": [asdict(p) for p in forecast],
    }


@app.command("trend")
def trend_command(
    input_path: Path = typer.Argument(..., help="YAML or JSON log export"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days to analyze"),
    today_str: Optional[str] = typer.Option(None, "--today", help="Analysis date (YYYY-MM-DD)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML"),
    json_flag: Optional[bool] = typer.Option(
        None, "--json/--table", help="Output format (default: defaults.output_format)"
    ),
) -> None:
    """Show the smoothed weight trend with its noise band."""
    command = "trend"
    settings = load_settings(config_path, command, bool(json_flag))
    json_output = wants_json(json_flag, settings)
    today = resolve_today(today_str, command, json_output)
    data = load_data(input_path, command, json_output)
    days = days or settings.defaults.window_days

    trend = compute_trend(data, days, today, settings.to_analytics_config())
    if trend is None:
        fail(
            f"Not enough weight data for a trend (need {settings.ewma.min_points} weigh-ins)",
            command,
            json_output,
        )

    summary = f"Trend: {trend['current_trend']:.1f}, {trend['weekly_change']:+.2f}/week"
    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": trend,
            "human_summary": summary,
        })
        return

    table = Table(title=f"Weight trend, last {days} days")
    table.add_column("Date")
    table.add_column("Weight", justify="right")
    table.add_column("Trend", justify="right", style="cyan")
    table.add_column("Band", justify="right", style="dim")
    for row in trend["points"]:
        if row["trend"] is None:
            continue
        table.add_row(
            row["date"],
            _fmt(row["weight"]),
            _fmt(row["trend"], 2),
            f"{_fmt(row['lower'])} - {_fmt(row['upper'])}",
        )
    console.print(table)
    console.print(f"[bold]{summary}[/bold]")

    if trend["forecast"]:
        ahead = trend["forecast"][-1]
        console.print(
            f"Next {ahead['day_offset']} weigh-ins: about {ahead['predicted']:.1f} "
            f"({ahead['confidence']}% confidence)"
        )
    if trend["plateau"]["is_plateau"]:
        console.print(f"[yellow]Plateau:[/yellow] {trend['plateau']['suggestion']}")
    for anomaly in trend["anomalies"]:
        console.print(
            f"[dim]Unusual weigh-in on {anomaly['date']}: {anomaly['value']:.1f} "
            f"(z={anomaly['z_score']:+.1f})[/dim]"
        )


# ============================================================================
# Consistency
# ============================================================================


@app.command("consistency")
def consistency_command(
    input_path: Path = typer.Argument(..., help="YAML or JSON log export"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days to analyze"),
    today_str: Optional[str] = typer.Option(None, "--today", help="Analysis date (YYYY-MM-DD)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML"),
    json_flag: Optional[bool] = typer.Option(
        None, "--json/--table", help="Output format (default: defaults.output_format)"
    ),
) -> None:
    """Score how steady daily intake is, per macro and overall."""
    command = "consistency"
    settings = load_settings(config_path, command, bool(json_flag))
    json_output = wants_json(json_flag, settings)
    today = resolve_today(today_str, command, json_output)
    data = load_data(input_path, command, json_output)
    days = days or settings.defaults.window_days

    records = in_window(data.daily, days, today)
    result = macro_consistency(records, settings.consistency.min_days)
    if result is None:
        fail(
            f"Need at least {settings.consistency.min_days} logged days, found {len(records)}",
            command,
            json_output,
        )

    percentages = result.percentages()
    summary = f"Overall consistency {result.overall_consistency}% over {len(records)} days"
    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": {**asdict(result), "percentages": percentages, "days": len(records)},
            "human_summary": summary,
        })
        return

    table = Table(title="Macro consistency")
    table.add_column("Macro")
    table.add_column("CV", justify="right")
    table.add_column("Consistency", justify="right")
    cvs = {
        "calories": result.calorie_cv,
        "protein": result.protein_cv,
        "carbs": result.carbs_cv,
        "fat": result.fat_cv,
    }
    for macro, cv in cvs.items():
        table.add_row(macro.title(), f"{cv:.3f}", f"{percentages[macro]}%")
    console.print(table)
    console.print(f"[bold]{summary}[/bold]")


# ============================================================================
# Adherence
# ============================================================================


@app.command("adherence")
def adherence_command(
    input_path: Path = typer.Argument(..., help="YAML or JSON log export"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Period length in days"),
    today_str: Optional[str] = typer.Option(None, "--today", help="Analysis date (YYYY-MM-DD)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML"),
    json_flag: Optional[bool] = typer.Option(
        None, "--json/--table", help="Output format (default: defaults.output_format)"
    ),
) -> None:
    """Grade how well recent days hit calorie and protein targets."""
    command = "adherence"
    settings = load_settings(config_path, command, bool(json_flag))
    json_output = wants_json(json_flag, settings)
    today = resolve_today(today_str, command, json_output)
    data = load_data(input_path, command, json_output)
    days = days or settings.adherence.period_days

    cfg = settings.adherence
    result = adherence(
        in_window(data.daily, days, today),
        days,
        calorie_tolerance=cfg.calorie_tolerance,
        protein_threshold=cfg.protein_threshold,
        weights=cfg.weights,
    )

    summary = f"Adherence {result.overall_score} ({result.grade}) over {days} days"
    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": {**asdict(result), "period_days": days},
            "human_summary": summary,
        })
        return

    style = GRADE_STYLES.get(result.grade[0], "white")
    table = Table(title=f"Adherence, last {days} days")
    table.add_column("Component")
    table.add_column("Score", justify="right")
    table.add_row("Calories on target", f"{result.calorie_adherence}%")
    table.add_row("Protein on target", f"{result.protein_adherence}%")
    table.add_row("Logging consistency", f"{result.logging_consistency}%")
    table.add_row("Days on target", f"{result.days_on_target}/{result.total_days}")
    console.print(table)
    console.print(
        f"Overall: [bold]{result.overall_score}[/bold] [{style}]{result.grade}[/{style}]"
    )


# ============================================================================
# Progress
# ============================================================================


@app.command("progress")
def progress_command(
    input_path: Path = typer.Argument(..., help="YAML or JSON log export"),
    today_str: Optional[str] = typer.Option(None, "--today", help="Analysis date (YYYY-MM-DD)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML"),
    json_flag: Optional[bool] = typer.Option(
        None, "--json/--table", help="Output format (default: defaults.output_format)"
    ),
) -> None:
    """Compare the actual rate of change with the goal and project a finish date."""
    command = "progress"
    settings = load_settings(config_path, command, bool(json_flag))
    json_output = wants_json(json_flag, settings)
    today = resolve_today(today_str, command, json_output)
    data = load_data(input_path, command, json_output)

    goal = data.goal
    if goal is None:
        fail("No goal in input file", command, json_output)

    rate = progress_for_goal(
        goal,
        data.weights,
        min_entries=settings.progress.min_entries,
        max_projection_days=settings.progress.max_projection_days,
    )
    if rate is None:
        fail(
            f"Not enough weight history (need {settings.progress.min_entries} weigh-ins)",
            command,
            json_output,
        )

    timeline = project_goal_timeline(
        goal.current_weight, goal.goal_weight, goal.expected_rate_per_week, today
    )

    projected = rate.projected_date.isoformat() if rate.projected_date else "not projected"
    summary = (
        f"{rate.status.replace('_', ' ').title()}: {rate.percent_of_expected}% of expected "
        f"rate, goal date {projected}"
    )
    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": {
                **asdict(rate),
                "goal_direction": goal.direction,
                "timeline": asdict(timeline) if timeline else None,
            },
            "human_summary": summary,
        })
        return

    style = STATUS_STYLES.get(rate.status, "white")
    lines = [
        f"Status: [{style}]{rate.status.replace('_', ' ')}[/{style}]",
        f"Actual rate: {rate.actual_rate_per_week:+.2f}/week",
        f"Expected rate: {rate.expected_rate_per_week:.2f}/week",
        f"Percent of expected: {rate.percent_of_expected}%",
        f"Remaining: {describe_remaining(rate.remaining, goal.direction)}",
        f"Projected goal date: {projected}",
    ]
    if timeline:
        lines.append(
            f"At the planned rate: {timeline.weeks_to_goal} weeks "
            f"({timeline.target_date.isoformat()})"
        )
    console.print(Panel("\n".join(lines), title="Goal progress"))


# ============================================================================
# Correlation
# ============================================================================


@app.command("correlate")
def correlate_command(
    input_path: Path = typer.Argument(..., help="YAML or JSON log export"),
    field: str = typer.Option("calories", "--field", "-f", help="Intake field"),
    against: Optional[str] = typer.Option(
        None, "--against", "-a", help="Second intake field (default: next-day weight change)"
    ),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days to analyze"),
    today_str: Optional[str] = typer.Option(None, "--today", help="Analysis date (YYYY-MM-DD)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML"),
    json_flag: Optional[bool] = typer.Option(
        None, "--json/--table", help="Output format (default: defaults.output_format)"
    ),
) -> None:
    """Correlate intake with weight change, or two intake fields with each other."""
    command = "correlate"
    settings = load_settings(config_path, command, bool(json_flag))
    json_output = wants_json(json_flag, settings)
    for name in (field, against):
        if name is not None and name not in INTAKE_LABELS:
            fail(
                f"Unknown field '{name}'. Choose from: {', '.join(INTAKE_LABELS)}",
                command,
                json_output,
            )
    today = resolve_today(today_str, command, json_output)
    data = load_data(input_path, command, json_output)
    days = days or settings.defaults.window_days

    records = in_window(data.daily, days, today)
    min_points = settings.correlation.min_points
    if against is None:
        weights = in_window(data.weights, days, today)
        result = intake_vs_weight_change(records, weights, min_points, field=field)
    else:
        result = correlate(
            [getattr(r, field) for r in records],
            [getattr(r, against) for r in records],
            INTAKE_LABELS[field],
            INTAKE_LABELS[against],
            min_points,
        )

    if result is None:
        fail(
            f"Not enough varied, paired data (need {min_points} points)",
            command,
            json_output,
        )

    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": asdict(result),
            "human_summary": result.description,
        })
        return

    console.print(f"[bold]{result.description}[/bold]")
    console.print(f"r = {result.coefficient:+.3f} (n = {result.sample_size})")


# ============================================================================
# Insights
# ============================================================================


def compute_insights(
    data: AnalysisInput, today: date, max_count: int, config: AnalyticsConfig
) -> list[dict]:
    insights = generate_insights(data.insight_context(today), max_count, config)
    return [i.to_dict() for i in insights]


def _print_insights(insights: list[dict]) -> None:
    for insight in insights:
        style = INSIGHT_STYLES.get(insight["type"], "white")
        console.print(
            f"{insight['emoji']} [{style}][bold]{insight['title']}[/bold][/{style}]"
        )
        console.print(f"   {insight['description']}")
        if insight["action"]:
            console.print(f"   [dim]-> {insight['action']}[/dim]")


@app.command("insights")
def insights_command(
    input_path: Path = typer.Argument(..., help="YAML or JSON log export"),
    max_count: Optional[int] = typer.Option(None, "--max", "-n", help="Maximum insights"),
    today_str: Optional[str] = typer.Option(None, "--today", help="Analysis date (YYYY-MM-DD)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML"),
    json_flag: Optional[bool] = typer.Option(
        None, "--json/--table", help="Output format (default: defaults.output_format)"
    ),
) -> None:
    """List ranked insights about recent logging."""
    command = "insights"
    settings = load_settings(config_path, command, bool(json_flag))
    json_output = wants_json(json_flag, settings)
    today = resolve_today(today_str, command, json_output)
    data = load_data(input_path, command, json_output)
    max_count = max_count or settings.insights.max_count

    generated = generate_insights(
        data.insight_context(today), max_count, settings.to_analytics_config()
    )
    insights = [i.to_dict() for i in generated]
    focus = next_week_focus(generated)

    summary = f"{len(insights)} insights"
    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": {"insights": insights, "next_week_focus": focus},
            "human_summary": summary,
        })
        return

    if not insights:
        console.print(
            f"[yellow]Log at least {settings.insights.min_days} days to get insights[/yellow]"
        )
        return
    _print_insights(insights)
    console.print()
    console.print("[bold]Next week:[/bold]")
    for item in focus:
        console.print(f"  - {item}")


# ============================================================================
# Report
# ============================================================================


def _cached(namespace: str, compute, *parts: Any) -> Any:
    return _cache.get_or_compute(make_key(namespace, *parts), compute)


@app.command("report")
def report_command(
    input_path: Path = typer.Argument(..., help="YAML or JSON log export"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days to analyze"),
    today_str: Optional[str] = typer.Option(None, "--today", help="Analysis date (YYYY-MM-DD)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML"),
    json_flag: Optional[bool] = typer.Option(
        None, "--json/--table", help="Output format (default: defaults.output_format)"
    ),
) -> None:
    """Run every analysis and print a combined report."""
    command = "report"
    settings = load_settings(config_path, command, bool(json_flag))
    json_output = wants_json(json_flag, settings)
    today = resolve_today(today_str, command, json_output)
    data = load_data(input_path, command, json_output)
    days = days or settings.defaults.window_days
    config = settings.to_analytics_config()

    records: list[DailyRecord] = in_window(data.daily, days, today)
    week = settings.adherence.period_days
    key_parts = (data, days, today, asdict(config))

    trend = _cached("trend", lambda: compute_trend(data, days, today, config), *key_parts)
    consistency = _cached(
        "consistency",
        lambda: macro_consistency(records, config.consistency.min_days),
        *key_parts,
    )
    grade = _cached(
        "adherence",
        lambda: adherence(
            in_window(data.daily, week, today),
            week,
            calorie_tolerance=config.adherence.calorie_tolerance,
            protein_threshold=config.adherence.protein_threshold,
            weights=config.adherence.weights,
        ),
        *key_parts,
    )
    progress = None
    if data.goal is not None:
        progress = _cached(
            "progress",
            lambda: progress_for_goal(
                data.goal,
                data.weights,
                min_entries=config.progress.min_entries,
                max_projection_days=config.progress.max_projection_days,
            ),
            *key_parts,
        )
    patterns = analyze_day_patterns(records)
    streaks = analyze_streaks(data.logged_dates or [r.date for r in data.daily], today)
    adaptation = _cached(
        "adaptation",
        lambda: detect_metabolic_adaptation(
            data.daily,
            data.weights,
            min_deficit=config.insights.adaptation_min_deficit,
            stall_rate=config.insights.adaptation_stall_rate,
        ),
        *key_parts,
    )
    insights = _cached(
        "insights",
        lambda: compute_insights(data, today, config.insights.max_count, config),
        *key_parts,
    )

    report = {
        "days": days,
        "today": today.isoformat(),
        "trend": None
        if trend is None
        else {k: v for k, v in trend.items() if k != "points"},
        "consistency": asdict(consistency) if consistency else None,
        "adherence": asdict(grade),
        "progress": asdict(progress) if progress else None,
        "day_patterns": asdict(patterns),
        "streaks": asdict(streaks),
        "metabolic_adaptation": asdict(adaptation) if adaptation else None,
        "insights": insights,
    }

    summary = f"Adherence {grade.overall_score} ({grade.grade}), {len(insights)} insights"
    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": report,
            "human_summary": summary,
        })
        return

    table = Table(title=f"Report for {today.isoformat()} ({days} days)")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    if trend is not None:
        table.add_row("Weight trend", f"{trend['current_trend']:.1f}")
        table.add_row("Weekly change", f"{trend['weekly_change']:+.2f}")
    if consistency is not None:
        table.add_row("Consistency", f"{consistency.overall_consistency}%")
    table.add_row("Adherence (last week)", f"{grade.overall_score} ({grade.grade})")
    if progress is not None:
        table.add_row("Goal status", progress.status.replace("_", " "))
        table.add_row(
            "Projected goal date",
            progress.projected_date.isoformat() if progress.projected_date else "-",
        )
    if adaptation is not None:
        table.add_row(
            "Metabolic adaptation",
            f"{adaptation.severity} (~{adaptation.estimated_adaptation} kcal)"
            if adaptation.adapted
            else "none",
        )
    table.add_row("Current streak", str(streaks.current_streak))
    table.add_row("Longest streak", str(streaks.longest_streak))
    if patterns.best_day:
        table.add_row("Lowest-calorie day", patterns.best_day)
    if patterns.worst_day:
        table.add_row("Highest-calorie day", patterns.worst_day)
    console.print(table)

    if insights:
        console.print()
        _print_insights(insights)


if __name__ == "__main__":
    app()
