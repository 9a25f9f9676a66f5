"""LifeDeck CLI: inspect and drive a local coaching session."""

import asyncio
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Annotated

import typer
from pydantic import TypeAdapter

from lifedeck.application.achievement_engine import AchievementEngine
from lifedeck.application.config import AppConfig, resolve_config
from lifedeck.application.engine import CoachingEngine
from lifedeck.application.factory import build_engine
from lifedeck.application.lifecycle import TransitionResult
from lifedeck.domain.models import CoachingCard, LifeDomain, UserProfile

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lifedeck: daily coaching cards, streaks and achievements.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage lifedeck configuration.")
app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    data_dir: Annotated[
        Path | None, typer.Option(help="Directory holding the session snapshot.")
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for reproducible decks.")] = None,
):
    """Global settings for lifedeck."""
    level = logging.WARNING if verbose == 0 else logging.INFO if verbose == 1 else logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"data_dir": data_dir, "seed": seed, "verbose": verbose or None}


def _config(ctx: typer.Context) -> AppConfig:
    return resolve_config((ctx.obj or {}).get("overrides", {}))


def _engine(ctx: typer.Context) -> CoachingEngine:
    config = _config(ctx)
    engine = build_engine(config)
    engine.load()
    if config.focus_domains and config.focus_domains != engine.profile.focus_domains:
        engine.set_focus_domains(config.focus_domains)
    return engine


def _resolve_card_id(engine: CoachingEngine, ref: str) -> str:
    """Accept a full card ID or any unique prefix/suffix of one."""
    snap = engine.snapshot()
    ids = [c.id for c in snap.active + snap.deferred + snap.completed]
    if ref in ids:
        return ref
    matches = [i for i in ids if i.startswith(ref) or i.endswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        typer.secho(f"No card matches '{ref}'.", fg=typer.colors.RED, err=True)
    else:
        typer.secho(f"'{ref}' is ambiguous ({len(matches)} cards).", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _format_card(card: CoachingCard) -> str:
    mark = " [premium]" if card.is_premium else ""
    ai = " [ai]" if card.ai_generated else ""
    star = " (bookmarked)" if card.bookmarked else ""
    return (
        f"{card.id[-8:]}  {card.domain.display_name:<12} {card.title}{mark}{ai}{star}\n"
        f"          {card.action_text} - {card.duration.minutes} min, "
        f"difficulty {card.difficulty:.1f}"
    )


def _report(result: TransitionResult) -> None:
    if not result.applied:
        typer.secho(f"Ignored: {result.reason}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    action = result.action.value if result.action else "none"
    title = result.card.title if result.card else result.card_id
    line = f"{action}: {title}"
    if result.points_awarded:
        line += f" (+{result.points_awarded} points)"
    typer.echo(line)
    for achievement in result.unlocked:
        typer.secho(f"Achievement unlocked: {achievement.title}", fg=typer.colors.GREEN)


# ---------------------------------------------------------------------------
# Deck commands
# ---------------------------------------------------------------------------


@app.command()
def deck(
    ctx: typer.Context,
    refresh: Annotated[
        bool, typer.Option("--refresh", help="Regenerate the deck even if today's exists.")
    ] = False,
):
    """Show today's deck, generating it if needed."""
    engine = _engine(ctx)
    cards = asyncio.run(engine.refresh_deck(force=refresh))

    if not cards:
        typer.echo("No cards left for today.")
    for card in cards:
        typer.echo(_format_card(card))

    snoozed = engine.deferred_cards()
    if snoozed:
        typer.echo(f"\n{len(snoozed)} snoozed card(s):")
        for card in snoozed:
            until = f" until {card.snoozed_until:%H:%M}" if card.snoozed_until else ""
            typer.echo(f"  {card.id[-8:]}  {card.title}{until}")


@app.command()
def complete(ctx: typer.Context, card: Annotated[str, typer.Argument(help="Card ID.")]):
    """Complete a card (swipe right)."""
    engine = _engine(ctx)
    _report(engine.complete(_resolve_card_id(engine, card)))


@app.command()
def dismiss(ctx: typer.Context, card: Annotated[str, typer.Argument(help="Card ID.")]):
    """Dismiss a card (swipe left)."""
    engine = _engine(ctx)
    _report(engine.dismiss(_resolve_card_id(engine, card)))


@app.command()
def snooze(
    ctx: typer.Context,
    card: Annotated[str, typer.Argument(help="Card ID.")],
    hours: Annotated[
        float | None, typer.Option(help="Snooze duration in hours (default from config).")
    ] = None,
):
    """Snooze a card (swipe up/down)."""
    engine = _engine(ctx)
    if hours is None:
        hours = _config(ctx).snooze_hours
    _report(engine.snooze(_resolve_card_id(engine, card), timedelta(hours=hours)))


@app.command()
def swipe(
    ctx: typer.Context,
    card: Annotated[str, typer.Argument(help="Card ID.")],
    dx: Annotated[float, typer.Argument(help="Horizontal displacement.")],
    dy: Annotated[float, typer.Argument(help="Vertical displacement (negative is up).")] = 0.0,
):
    """Apply a raw swipe gesture to a card."""
    engine = _engine(ctx)
    _report(engine.swipe(_resolve_card_id(engine, card), dx, dy))


@app.command()
def bookmark(ctx: typer.Context, card: Annotated[str, typer.Argument(help="Card ID.")]):
    """Toggle a card's bookmark."""
    engine = _engine(ctx)
    updated = engine.toggle_bookmark(_resolve_card_id(engine, card))
    if updated is None:
        raise typer.Exit(code=1)
    typer.echo(f"{'Bookmarked' if updated.bookmarked else 'Unbookmarked'}: {updated.title}")


@app.command()
def note(
    ctx: typer.Context,
    card: Annotated[str, typer.Argument(help="Card ID.")],
    text: Annotated[str, typer.Argument(help="Note text; empty clears it.")],
):
    """Attach a note to a card."""
    engine = _engine(ctx)
    updated = engine.add_note(_resolve_card_id(engine, card), text)
    if updated is None:
        raise typer.Exit(code=1)
    typer.echo(f"Noted: {updated.title}")


@app.command()
def focus(
    ctx: typer.Context,
    domains: Annotated[list[LifeDomain], typer.Argument(help="Domains to focus on.")],
):
    """Choose which domains the daily deck draws from."""
    engine = _engine(ctx)
    profile = engine.set_focus_domains(domains)
    typer.echo("Focus: " + ", ".join(d.value for d in profile.effective_focus_domains))


# ---------------------------------------------------------------------------
# Progress commands
# ---------------------------------------------------------------------------


@app.command()
def progress(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print the profile as JSON.")] = False,
):
    """Show scores, streaks and points."""
    engine = _engine(ctx)
    profile = engine.profile

    if as_json:
        data = TypeAdapter(UserProfile).dump_python(profile, mode="json")
        data["life_score"] = profile.life_score
        typer.echo(json.dumps(data, indent=2))
        return

    summary = engine.daily_summary()
    typer.echo(f"Life score:   {profile.life_score:.1f}")
    for domain in LifeDomain:
        typer.echo(f"  {domain.display_name:<12} {profile.score_for(domain):5.1f}")
    typer.echo(f"Life points:  {profile.life_points}")
    typer.echo(f"Streak:       {profile.current_streak} (longest {profile.longest_streak})")
    typer.echo(f"Completed:    {profile.total_cards_completed} total, {summary.completed} today")


@app.command()
def achievements(ctx: typer.Context):
    """List achievements and progress towards locked ones."""
    engine = _engine(ctx)
    profile = engine.profile
    fractions = {p.achievement_id: p.fraction for p in AchievementEngine().progress(profile)}

    for a in profile.achievements:
        if a.is_unlocked:
            when = f"{a.unlocked_at:%Y-%m-%d}" if a.unlocked_at else "earlier"
            typer.echo(f"[x] {a.title:<18} unlocked {when}")
        else:
            pct = int(fractions.get(a.id, 0.0) * 100)
            typer.echo(f"[ ] {a.title:<18} {pct:3d}% of {a.points_required} points")


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Print the resolved configuration as JSON."""
    config = _config(ctx)
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
