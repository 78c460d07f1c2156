"""
Tenant Confirmation Prompt
==========================

Asks the operator to confirm a destructive run by typing the tenant id.
With ``--no-prompt`` the prompt is replaced by a countdown so that an
accidental invocation can still be interrupted.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from rich.console import Console
from rich.prompt import Prompt

# Module logger
logger = logging.getLogger(__name__)


class TenantPrompt:
    """
    Confirmation gate registered with the engine.

    Parameters
    ----------
    parameters : Parameters
        Engine parameters; ``force`` and ``force_sleep`` are read.
    tenant : Tenant
        The discovered tenant.
    console : Console, optional
        Output console.
    ask : callable, optional
        Replaces :meth:`rich.prompt.Prompt.ask`.
    sleep : callable, optional
        Replaces :func:`time.sleep`.

    Example
    -------
    >>> prompt = TenantPrompt(parameters, tenant)
    >>> if not prompt():
    ...     print("aborted")
    """

    def __init__(
        self,
        parameters: Any,
        tenant: Any,
        console: Optional[Console] = None,
        ask: Optional[Callable[..., str]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.parameters = parameters
        self.tenant = tenant
        self.console = console or Console()
        self.ask = ask or Prompt.ask
        self.sleep = sleep

    def __call__(self) -> bool:
        """Return True when the run may continue."""
        self.console.print(
            f"\n[red bold]Do you really want to nuke the tenant with the ID "
            f"{self.tenant.id}?[/red bold]"
        )

        if self.parameters.force:
            delay = self.parameters.force_sleep
            self.console.print(
                f"[yellow]Waiting {delay}s before continuing. "
                f"Press Ctrl+C to abort.[/yellow]"
            )
            self.sleep(delay)
            return True

        answer = self.ask(
            "Do you want to continue? Enter the tenant ID to continue",
            console=self.console,
        )
        if (answer or "").strip() != self.tenant.id:
            logger.warning("Tenant ID did not match, aborting")
            self.console.print("[yellow]Aborted: tenant ID did not match.[/yellow]")
            return False
        return True
