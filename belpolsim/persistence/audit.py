"""
Saved Game Audit Tool — Independent verification of a saved state file.

Loads a game state written by the state store, re-checks every invariant
(polling sums, seat counts) and prints the seat distribution. Exits with 0
when the file is sound and 1 otherwise.

Usage:
    python -m belpolsim.persistence.audit savegame.json
    python -m belpolsim.persistence.audit savegame.json --verbose
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from belpolsim.electoral.polling import national_share, polling_totals
from belpolsim.persistence.store import verify_invariants
from belpolsim.state.schema import GameState

console = Console()


def run_audit(path: Path, verbose: bool = False) -> bool:
    """
    Audit a saved game state.

    Args:
        path: Path of the saved JSON state.
        verbose: Also print per-constituency polling totals.

    Returns:
        True if the state is valid, False otherwise.
    """
    console.print("\n[bold blue]═══ BelPolSim Saved State Audit ═══[/bold blue]")
    console.print(f"[dim]{path}[/dim]\n")

    try:
        state = GameState.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        console.print("[bold red]✗ UNREADABLE[/bold red]")
        console.print(f"  Reason: {exc}")
        return False

    console.print(f"  Turn: [bold]{state.turn}[/bold]  Phase: [bold]{state.phase.value}[/bold]")
    console.print("  Verifying invariants...", end=" ")
    start_time = time.time()
    is_valid, checked, message = verify_invariants(state)
    elapsed = time.time() - start_time

    if is_valid:
        console.print("[bold green]✓ VALID[/bold green]")
        console.print(f"  Checks passed: [bold]{checked}[/bold]")
        console.print(f"  Verification time: {elapsed:.3f}s")
    else:
        console.print("[bold red]✗ INVALID[/bold red]")
        console.print(f"  Checks passed before failure: {checked}")
        console.print(f"  Reason: {message}")

    table = Table(title="Parliament", show_lines=False)
    table.add_column("Party", style="cyan")
    table.add_column("Seats", justify="right", style="bold")
    table.add_column("National share", justify="right")
    table.add_column("Government", justify="center")
    for pid, party in sorted(state.parties.items(), key=lambda item: -item[1].total_seats):
        table.add_row(
            party.name,
            str(party.total_seats),
            f"{national_share(state, pid):.1f}%",
            "✓" if state.is_coalition_member(pid) else "—",
        )
    console.print(table)

    if verbose:
        polling = Table(title="Polling totals", show_lines=True)
        polling.add_column("Constituency", style="cyan")
        polling.add_column("Total", justify="right")
        for cid, total in polling_totals(state).items():
            polling.add_row(state.constituencies[cid].name, f"{total:.6f}")
        console.print(polling)

    console.print("\n[bold blue]═══ Audit Complete ═══[/bold blue]\n")
    return is_valid


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="BelPolSim saved state auditor")
    parser.add_argument("path", type=Path, help="Saved game state (JSON)")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show per-constituency polling totals",
    )
    args = parser.parse_args(argv)
    sys.exit(0 if run_audit(args.path, verbose=args.verbose) else 1)


if __name__ == "__main__":
    main()
