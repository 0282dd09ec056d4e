"""
Progress and result rendering for the command line
"""

import json
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from battlescope.config import POLL_INTERVAL, STALL_WARNING_SECONDS
from battlescope.moves import display_label
from battlescope.results import MoveShare, summarize


def format_elapsed(seconds: float) -> str:
    """m:ss"""
    seconds = int(seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


def waiting_line(elapsed: float) -> str:
    """Status shown before the first trial finishes"""
    if elapsed < STALL_WARNING_SECONDS:
        dots = int(elapsed / POLL_INTERVAL) % 4
        return "Awaiting the AI's decision" + "." * dots
    return f"No response in {int(elapsed)} seconds. Did you give me the right save state?"


def progress_line(results: Dict[int, int], elapsed: float, columns: int) -> str:
    """
    One-line summary of the running tally, denser on narrow terminals

    Args:
        results: decision code -> count
        elapsed: seconds since the run started
        columns: terminal width
    """
    rows = summarize(results)
    if not rows:
        return waiting_line(elapsed)

    sample_size = sum(row.count for row in rows)
    minutes, seconds = divmod(int(elapsed), 60)

    # Few moves leave more room per entry
    columns += (4 - min(len(rows), 4)) * 17

    if columns < 80:
        return " | ".join(f"{display_label(r.code)} {r.share * 100:3.0f}" for r in rows)
    if columns < 88:
        return " | ".join(f"{display_label(r.code)} {r.share * 100:3.0f}%" for r in rows)
    if columns < 92:
        return " | ".join(f"{display_label(r.code)} {r.share * 100:3.1f}%" for r in rows)
    if columns < 105:
        return " | ".join(f"{display_label(r.code)}: {r.share * 100:5.1f}%" for r in rows)

    line = f"{sample_size:<7}"
    for r in rows:
        line += f" | {display_label(r.code)}: {r.share * 100:6.2f}%"
    if columns >= 115:
        line += f" | {minutes:02d}:{seconds:02d}"
    return line


def terminal_columns() -> int:
    return shutil.get_terminal_size((80, 24)).columns


def print_progress(line: str, out: TextIO = sys.stdout) -> None:
    """Overwrite the current terminal line"""
    width = terminal_columns()
    print(f"\r{line[:width - 1]:<{width - 1}}", end="", flush=True, file=out)


def finished_message(sample_size: int, elapsed: float, cancelled: bool) -> str:
    if cancelled and sample_size == 0:
        return f"Cancelled; no trials recorded in {format_elapsed(elapsed)}"
    plural = "" if sample_size == 1 else "s"
    return f"Finished {sample_size} trial{plural} in {format_elapsed(elapsed)}"


def results_table(results: Dict[int, int]) -> List[str]:
    """Final MOVE / COUNT / % table"""
    lines = [
        "MOVE            COUNT        %",
        "=" * 30,
    ]
    for row in summarize(results):
        lines.append(f"{display_label(row.code):<12} {row.count:8} {row.share * 100:7.2f}%")
    return lines


def print_results_table(results: Dict[int, int], out: TextIO = sys.stdout) -> None:
    print(file=out)
    for line in results_table(results):
        print(line, file=out)
    print(file=out)


def build_report(game: str, results: Dict[int, int], elapsed: float,
                 trials_cap: Optional[int] = None) -> Dict:
    """JSON-serializable summary of a run"""
    rows: List[MoveShare] = summarize(results)
    return {
        'game': game,
        'trials': sum(row.count for row in rows),
        'trials_cap': trials_cap,
        'elapsed_seconds': round(elapsed, 3),
        'moves': [row.to_dict() for row in rows],
    }


def save_report(report: Dict, path: Path) -> None:
    """Write the report atomically via a temp file"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_suffix(path.suffix + '.tmp')
    try:
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
        temp_file.replace(path)
    except OSError:
        if temp_file.exists():
            temp_file.unlink()
        raise
