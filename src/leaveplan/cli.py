"""Typer CLI for the leave planner."""

from __future__ import annotations

import asyncio
import datetime
import json
import pathlib
import sys

import typer
from loguru import logger

from leaveplan.classifier import classify, parse_date
from leaveplan.constraints import MandatoryRange, VacationConstraints
from leaveplan.oracle import PRESETS, HolidayOracle, StaticHolidayOracle, get_oracle
from leaveplan.planner import SuggestionResult, compute_suggestions, format_plan, format_summary

app = typer.Typer(
    name="leaveplan",
    help="Leave planner: pick the workdays to take off so they bridge weekends "
    "and holidays into the longest possible breaks.",
    add_completion=False,
)


def _parse_date(value: str) -> datetime.date:
    """Parse a YYYY-MM-DD date string."""
    try:
        return parse_date(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date format {value!r}. Use YYYY-MM-DD.") from None


def _parse_mandatory(value: str) -> tuple[datetime.date, datetime.date, int]:
    """Parse a START:END:DAYS mandatory range."""
    parts = value.split(":")
    if len(parts) != 3:
        raise typer.BadParameter(f"Invalid mandatory range {value!r}. Use START:END:DAYS.")
    start, end, days = parts
    try:
        required = int(days)
    except ValueError:
        raise typer.BadParameter(f"Invalid day count {days!r} in {value!r}.") from None
    return _parse_date(start), _parse_date(end), required


def _configure_logging(verbose: bool) -> None:
    # Resolve sys.stderr per message so redirected streams are honoured
    logger.remove()
    logger.add(
        lambda message: sys.stderr.write(message),
        format="<level>{level: <8}</level> | {message}",
        level="DEBUG" if verbose else "WARNING",
    )


def _load_config(path: str) -> dict[str, object]:
    """Load a JSON config file holding default option values."""
    p = pathlib.Path(path)
    if not p.exists():
        typer.echo(f"Error: Config file not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        data = json.loads(p.read_text())
    except json.JSONDecodeError as exc:
        typer.echo(f"Error: Invalid JSON in config file: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if not isinstance(data, dict):
        typer.echo("Error: Config file must contain a JSON object.", err=True)
        raise typer.Exit(code=1)

    return data


def _build_oracle(
    country: str,
    holidays: list[datetime.date],
    workdays: list[datetime.date],
) -> HolidayOracle:
    if country == "none":
        return StaticHolidayOracle(holidays=holidays, workdays=workdays)
    if workdays:
        typer.echo("Error: --workday is only supported with --country none.", err=True)
        raise typer.Exit(code=1)
    try:
        return get_oracle(country, holidays)
    except KeyError as exc:
        typer.echo(f"Error: {exc.args[0]}", err=True)
        raise typer.Exit(code=1) from None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def optimize(
    start: str | None = typer.Option(
        None, "--start", "-s", help="First day of the range (YYYY-MM-DD)."
    ),
    end: str | None = typer.Option(
        None, "--end", "-e", help="Last day of the range (YYYY-MM-DD)."
    ),
    days: int | None = typer.Option(
        None, "--days", "-d", help="Number of leave days to take.", min=0
    ),
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' for weekends only. "
        "Defaults to cn.",
    ),
    holiday: list[str] | None = typer.Option(  # noqa: B008
        None, "--holiday", "-H", help="Additional holiday date (YYYY-MM-DD). Repeatable."
    ),
    workday: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--workday",
        "-W",
        help="Make-up workday on a weekend (YYYY-MM-DD), with --country none. Repeatable.",
    ),
    exclude: list[str] | None = typer.Option(  # noqa: B008
        None, "--exclude", "-x", help="Date that cannot be taken as leave. Repeatable."
    ),
    mandatory: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--mandatory",
        "-m",
        help="START:END:DAYS - take at least DAYS leave inside the range. Repeatable.",
    ),
    max_continuous: int | None = typer.Option(
        None,
        "--max-continuous",
        help="Longest allowed run of consecutive leave days (0 = no consecutive leave).",
        min=0,
    ),
    top: int = typer.Option(5, "--top", "-n", help="Number of plans to show.", min=1),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON."),
    config: str | None = typer.Option(
        None, "--config", help="Path to JSON config file with default values."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Suggest which workdays to take off for the longest breaks.

    Options given on the command line override values from --config.
    """
    _configure_logging(verbose)
    data = _load_config(config) if config is not None else {}

    start = start if start is not None else data.get("start")  # type: ignore[assignment]
    end = end if end is not None else data.get("end")  # type: ignore[assignment]
    days = days if days is not None else data.get("days")  # type: ignore[assignment]
    if start is None or end is None or days is None:
        typer.echo(
            "Error: --start, --end and --days are required (or set them in --config).",
            err=True,
        )
        raise typer.Exit(code=1)

    try:
        requested_days = int(days)
    except (TypeError, ValueError):
        typer.echo(f"Error: Invalid day count in config file: {days!r}", err=True)
        raise typer.Exit(code=1) from None
    if requested_days < 0:
        typer.echo(f"Error: Day count must be >= 0, got {requested_days}.", err=True)
        raise typer.Exit(code=1)

    resolved_country = (country or str(data.get("country", "cn"))).lower()
    holidays = [_parse_date(h) for h in (holiday or data.get("holidays", []))]  # type: ignore[union-attr]
    workdays = [_parse_date(w) for w in (workday or data.get("workdays", []))]  # type: ignore[union-attr]

    try:
        base = VacationConstraints.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        typer.echo(f"Error: Invalid constraints in config file: {exc}", err=True)
        raise typer.Exit(code=1) from None

    constraints = VacationConstraints(
        excluded_dates=(
            frozenset(_parse_date(x) for x in exclude) if exclude else base.excluded_dates
        ),
        mandatory_ranges=(
            tuple(MandatoryRange(*_parse_mandatory(m)) for m in mandatory)
            if mandatory
            else base.mandatory_ranges
        ),
        max_continuous_days=(
            max_continuous if max_continuous is not None else base.max_continuous_days
        ),
    )

    start_date = _parse_date(str(start))
    end_date = _parse_date(str(end))
    oracle = _build_oracle(resolved_country, holidays, workdays)

    result = asyncio.run(
        compute_suggestions(
            start_date,
            end_date,
            requested_days,
            None if constraints.is_empty else constraints,
            oracle=oracle,
            limit=top,
        )
    )

    if output_json:
        _print_json(result, start_date, end_date, resolved_country)
    else:
        _print_text(result, start_date, end_date, resolved_country)


def _print_text(
    result: SuggestionResult,
    start: datetime.date,
    end: datetime.date,
    country: str,
) -> None:
    w = 64
    typer.echo("=" * w)
    typer.echo("  LEAVE PLANNER")
    typer.echo("=" * w)
    typer.echo(f"  Range:    {start.isoformat()} -> {end.isoformat()}")
    typer.echo(f"  Leave:    {result.summary.requested_days} days")
    typer.echo(f"  Calendar: {PRESETS.get(country, 'Weekends and custom holidays')}")
    typer.echo()
    typer.echo(format_summary(result.summary))

    for rank, plan in enumerate(result.plans, 1):
        typer.echo(format_plan(plan, rank, result.summary.constraints))

    typer.echo()
    typer.echo("=" * w)
    if result.plans:
        n = len(result.plans)
        typer.echo(f"  Generated {n} leave plan option{'s' if n != 1 else ''}.")
    else:
        typer.echo("  No leave plan found. Try fewer days, a wider range or looser constraints.")
    typer.echo("=" * w)


def _print_json(
    result: SuggestionResult,
    start: datetime.date,
    end: datetime.date,
    country: str,
) -> None:
    summary = result.summary
    output = {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "country": country,
        "plans": [
            {
                "dates": [d.isoformat() for d in plan.dates],
                "score": plan.score,
                "total_days": plan.total_days,
                "continuous_days": plan.continuous_days,
                "description": plan.description,
                "blocks": [
                    {
                        "start_date": b.start_date.isoformat(),
                        "end_date": b.end_date.isoformat(),
                        "total_days": b.total_days,
                        "leave_days": b.leave_days,
                        "holidays": b.holidays,
                        "weekend_days": b.weekend_days,
                    }
                    for b in plan.blocks
                ],
            }
            for plan in result.plans
        ],
        "summary": {
            "total_workdays": summary.total_workdays,
            "total_holidays": summary.total_holidays,
            "total_weekends": summary.total_weekends,
            "requested_days": summary.requested_days,
            "constraints": summary.constraints.to_dict() if summary.constraints else None,
        },
    }
    json.dump(output, sys.stdout, indent=2, ensure_ascii=False)
    typer.echo()


@app.command()
def holidays(
    start: str = typer.Option(..., "--start", "-s", help="First day of the range (YYYY-MM-DD)."),
    end: str = typer.Option(..., "--end", "-e", help="Last day of the range (YYYY-MM-DD)."),
    country: str = typer.Option(
        "cn",
        "--country",
        "-c",
        help=f"Country preset ({', '.join(sorted(PRESETS))}).",
    ),
) -> None:
    """List holidays and make-up workdays for a country preset."""
    start_date = _parse_date(start)
    end_date = _parse_date(end)
    if end_date < start_date:
        typer.echo("Error: --end is before --start.", err=True)
        raise typer.Exit(code=1)

    try:
        oracle = get_oracle(country)
    except KeyError as exc:
        typer.echo(f"Error: {exc.args[0]}", err=True)
        raise typer.Exit(code=1) from None

    records = asyncio.run(classify(start_date, end_date, oracle))
    off = [r.date for r in records if r.is_holiday]
    makeup = [r.date for r in records if r.is_weekend and r.is_working_day]

    typer.echo(
        f"  {PRESETS[country.lower()]}: {start_date.isoformat()} to {end_date.isoformat()}"
    )
    typer.echo()
    typer.echo("  Holidays:")
    for d in off:
        name = oracle.holiday_name(d) or d.strftime("%b %d")
        typer.echo(f"    {d.strftime('%a, %b %d'):>12}  {name}")
    if makeup:
        typer.echo()
        typer.echo("  Make-up workdays:")
        for d in makeup:
            typer.echo(f"    {d.strftime('%a, %b %d'):>12}")


def main() -> None:
    """Entry point for the CLI."""
    app()
