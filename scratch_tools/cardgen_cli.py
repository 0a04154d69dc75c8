#!/usr/bin/env python3
"""
Scratch-Card Engine - scratchgen CLI

Usage:
    scratchgen generate projects/xmas.json --seed 42
    scratchgen generate projects/xmas.json --output-dir build/
    scratchgen validate projects/xmas.json output/XMAS24-lvw.json --audit-losers
    scratchgen preview projects/xmas.json --count 3 --winner

Exit codes: 0 ok, 1 validation violations, 2 configuration or variety errors
or unreadable files.
"""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from scratch_config.card_schema import (
    CardProject, GridModuleBase, RowModuleBase, Ticket, dump_tickets, load_project, load_tickets,
)
from scratch_config.settings import GenerationSettings
from scratch_engine.errors import ScratchEngineError
from scratch_engine.filling import count_near_miss_sets
from scratch_engine.rng import RandomStream
from scratch_tools.ticket_generator import (
    eligible_prizes, ensure_ready, generate_batch, generate_ticket, loser_tier,
)
from scratch_tools.win_validator import validate_tickets

logger = logging.getLogger("scratchcard.cli")
console = Console()

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_CONFIG = 2


# ═══════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════

def cmd_generate(args) -> int:
    project = load_project(args.project)
    result = generate_batch(project, master_seed=args.seed)

    out_dir = Path(args.output_dir) if args.output_dir else GenerationSettings.OUTPUT_DIR
    job = project.settings.job_code or Path(args.project).stem
    lvw_path = dump_tickets(result.lvw, out_dir / f"{job}-lvw.json")
    hvw_path = dump_tickets(result.hvw, out_dir / f"{job}-hvw.json")

    summary = result.summary()
    table = Table(title=f"{job} - generation summary")
    table.add_column("Item")
    table.add_column("Value", justify="right")
    table.add_row("Master seed", str(summary["seed"]))
    table.add_row("LVW tickets", f"{summary['lvw_tickets']:,}")
    table.add_row("LVW winners", f"{summary['lvw_winners']:,}")
    table.add_row("HVW tickets", f"{summary['hvw_tickets']:,}")
    for prize, count in summary["winners_by_prize"].items():
        table.add_row(f"  wins of {prize}", f"{count:,}")
    table.add_row("Duration", f"{summary['duration_seconds']:.2f}s")
    console.print(table)
    console.print(f"[green]✅ LVW: {lvw_path}[/green]")
    console.print(f"[green]✅ HVW: {hvw_path}[/green]")
    return EXIT_OK


def cmd_validate(args) -> int:
    project = load_project(args.project)
    tickets = load_tickets(args.tickets)
    report = validate_tickets(tickets, project, audit_losers=args.audit_losers)

    if args.json:
        print(report.to_json())
        return EXIT_OK if report.passed else EXIT_VIOLATIONS

    console.print(Panel(
        f"[bold]{report.status}[/bold]\n"
        f"Tickets: {report.tickets_checked:,}   Winners: {report.winners_checked:,}   "
        f"Violations: {len(report.violations):,}",
        title=f"Win validation - {Path(args.tickets).name}",
    ))
    if report.violations:
        table = Table()
        table.add_column("Ticket", justify="right")
        table.add_column("Game", justify="right")
        table.add_column("Kind")
        table.add_column("Message")
        for v in report.violations:
            game = "-" if v.game_number is None else str(v.game_number)
            table.add_row(str(v.ticket_index), game, v.kind.value, v.message)
        console.print(table)
    return EXIT_OK if report.passed else EXIT_VIOLATIONS


def _panel_rows(module, ids: list[int]) -> list[list[int]]:
    if isinstance(module, GridModuleBase):
        width = module.columns
    elif isinstance(module, RowModuleBase):
        width = module.items_per_row
    else:
        return [ids]
    return [ids[i:i + width] for i in range(0, len(ids), width)] or [[]]


def render_ticket(project: CardProject, ticket: Ticket, number: int) -> Table:
    prize = ticket.win_prize.display_text or str(ticket.win_prize.value)
    table = Table(title=f"Ticket {number} - {'WIN ' + prize if ticket.is_winner else 'no win'}")
    table.add_column("Game")
    table.add_column("Panel")
    table.add_column("Near misses", justify="right")
    table.add_column("Prize", justify="right")
    for play_data in ticket.game_data:
        module = project.module_by_number(play_data.game_number)
        rows = _panel_rows(module, play_data.generated_symbol_ids)
        panel = "\n".join(" ".join(f"{i:>3}" for i in row) for row in rows)
        if isinstance(module, RowModuleBase):
            near = str(sum(count_near_miss_sets(row, module.items_to_match) for row in rows))
        elif isinstance(module, GridModuleBase):
            near = str(count_near_miss_sets(play_data.generated_symbol_ids, module.items_to_match))
        else:
            near = "-"
        won = "[bold green]★[/bold green]" if play_data.prize_tier_index >= 0 else ""
        table.add_row(module.label if module else f"Game {play_data.game_number}", panel, near, won)
    return table


def cmd_preview(args) -> int:
    project = load_project(args.project)
    ensure_ready(project)
    seed = GenerationSettings.resolve_seed(args.seed)
    rng = RandomStream(seed)

    if args.winner:
        prizes = [p for p in eligible_prizes(project) if p.value > 0 and not p.is_online_prize]
        if not prizes:
            console.print("[yellow]⚠️  No cash prizes configured; previewing losers.[/yellow]")
            prizes = [loser_tier(project)]
    else:
        prizes = [loser_tier(project)]

    console.print(f"[cyan]Preview seed: {seed}[/cyan]")
    seen = set()
    for n in range(args.count):
        prize = prizes[n % len(prizes)]
        ticket = generate_ticket(project, prize, rng, seen, ticket_index=n)
        console.print(render_ticket(project, ticket, n + 1))
    return EXIT_OK


# ═══════════════════════════════════════════════════════════════
# Entry Point
# ═══════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scratchgen", description="Generate and validate scratch-card play data")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate LVW and HVW ticket files")
    gen.add_argument("project", help="Project JSON file")
    gen.add_argument("--seed", type=int, default=None, help="Master seed (default: SCRATCH_MASTER_SEED or random)")
    gen.add_argument("--output-dir", type=str, default=None)
    gen.set_defaults(func=cmd_generate)

    val = sub.add_parser("validate", help="Validate a ticket file against its project")
    val.add_argument("project", help="Project JSON file")
    val.add_argument("tickets", help="Ticket JSON file")
    val.add_argument("--audit-losers", action="store_true", help="Also flag losing panels that read as wins")
    val.add_argument("--json", action="store_true", help="Print the report as JSON")
    val.set_defaults(func=cmd_validate)

    pre = sub.add_parser("preview", help="Render a few sample tickets")
    pre.add_argument("project", help="Project JSON file")
    pre.add_argument("--seed", type=int, default=None)
    pre.add_argument("--count", type=int, default=3)
    pre.add_argument("--winner", action="store_true", help="Preview winning tickets")
    pre.set_defaults(func=cmd_preview)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (ScratchEngineError, ValidationError, OSError) as e:
        logger.error(str(e))
        console.print(f"[red]❌ {e}[/red]")
        return EXIT_CONFIG


if __name__ == "__main__":
    sys.exit(main())
