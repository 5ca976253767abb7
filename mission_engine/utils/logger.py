import os
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
console = Console(highlight=False)
VERBOSE = os.getenv("MISSION_VERBOSE", "false").lower() == "true"
def debug(msg: str):
    if VERBOSE: console.print(f"[dim]DEBUG[/]: {msg}")
def info(msg: str): console.print(f"[bold cyan]INFO[/]: {msg}")
def warn(msg: str): console.print(f"[bold yellow]WARN[/]: {msg}")
def error(msg: str): console.print(f"[bold red]ERROR[/]: {msg}")
def panel(title: str, content: str): console.print(Panel.fit(content, title=title))
def table(title: str, columns: list[str], rows: list[list]):
    grid = Table(title=title)
    for c in columns: grid.add_column(c)
    for r in rows: grid.add_row(*[str(v) for v in r])
    console.print(grid)
class Spinner:
    """Transient spinner for the planner round-trip."""
    def __init__(self, desc: str = "Working…"): self.desc = desc
    def __enter__(self):
        self.progress = Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                                 TimeElapsedColumn(), console=console, transient=True)
        self.task = self.progress.add_task(self.desc, total=None)
        self.progress.start(); return self
    def update(self, desc: str): self.progress.update(self.task, description=desc)
    def __exit__(self, exc_type, exc, tb): self.progress.stop()
