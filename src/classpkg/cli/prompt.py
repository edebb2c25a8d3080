from rich.console import Console
from rich.prompt import Prompt

from classpkg.models import Action, ConflictRequest

_CANCEL = "cancel"


class PromptResolver:
    """Ask the operator on the terminal; "cancel" leaves the decision open."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def resolve(self, request: ConflictRequest) -> Action | None:
        self.console.print(f"[bold]{request.description}[/bold]")
        for action, label in request.actions.items():
            self.console.print(f"  [cyan]{action}[/cyan]  {label}")
        choices = [str(action) for action in request.actions] + [_CANCEL]
        answer = Prompt.ask("Choose an action", choices=choices, default=choices[0], console=self.console)
        if answer == _CANCEL:
            return None
        return Action(answer)
