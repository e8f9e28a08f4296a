"""CLI entrypoint for clipai."""

from __future__ import annotations

import argparse
import asyncio
from importlib import metadata
from pathlib import Path
from typing import Sequence

import pyperclip
from rich.console import Console
from rich.markdown import Markdown
from rich.prompt import Prompt

from .completion import CompletionClient
from .config import Preferences, ensure_config_dir, load_config
from .content import ClipboardSnapshot
from .events import (
    ACTION_FAILURE,
    ACTION_PROGRESS,
    MODEL_AUTO_SWITCHED,
    Event,
    EventBus,
)
from .hotkeys import HotKeyAction, find_hotkey, hotkeys_to_json, load_hotkeys
from .logging_utils import configure_logging
from .orchestrator import ActionOrchestrator
from .rendering import (
    conversation_markdown,
    conversation_text,
    result_markdown,
    result_stats,
    snapshot_char_estimate,
    snapshot_preview,
)
from .session import ConversationSession

CHAT_HELP = "Commands: /copy, /copyall, /retry, /clip <message>, /quit"
RESULT_HELP = "Actions: y copy, r regenerate, c continue in chat, q quit"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipai", description="Send clipboard content to a chat model"
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    sub = parser.add_subparsers(dest="command")

    hotkeys = sub.add_parser("hotkeys", help="List configured hotkey actions")
    hotkeys.add_argument("--json", action="store_true", help="Print as JSON")

    sub.add_parser("preview", help="Show what is on the clipboard")

    run = sub.add_parser("run", help="Run a hotkey action on the clipboard")
    run.add_argument("hotkey_id")
    run.add_argument("--copy", action="store_true", help="Copy the result to the clipboard")
    run.add_argument(
        "--once", action="store_true", help="Print the result and exit without prompting"
    )

    sub.add_parser("chat", help="Start a conversation seeded with the clipboard")
    return parser


def _subscribe_console(bus: EventBus, console: Console) -> None:
    def on_progress(event: Event) -> None:
        console.print(f"[dim]{event.data['title']}[/dim]")

    def on_failure(event: Event) -> None:
        console.print(f"[bold red]{event.data['title']}:[/bold red] {event.data['message']}")

    def on_switch(event: Event) -> None:
        console.print(f"[yellow]{event.data['title']}:[/yellow] {event.data['message']}")

    bus.subscribe(ACTION_PROGRESS, on_progress)
    bus.subscribe(ACTION_FAILURE, on_failure)
    bus.subscribe(MODEL_AUTO_SWITCHED, on_switch)


async def _run_hotkey(
    orchestrator: ActionOrchestrator,
    prefs: Preferences,
    console: Console,
    hotkey_id: str,
    copy: bool,
    once: bool = False,
) -> int:
    hotkey = find_hotkey(load_hotkeys(prefs.hotkeys_json), hotkey_id)
    if hotkey is None:
        console.print(f"[bold red]Unknown hotkey:[/bold red] {hotkey_id}")
        return 2

    snapshot = await orchestrator.refresh_clipboard()
    outcome = await orchestrator.run_hotkey_once(hotkey, snapshot)
    if not outcome.ok or outcome.text is None:
        return 1

    _print_result(console, hotkey, outcome.text)
    if copy:
        pyperclip.copy(outcome.text)
        console.print("[green]Copied to clipboard[/green]")
    if once:
        return 0
    return await _result_actions(orchestrator, console, hotkey, snapshot, outcome.text)


def _print_result(console: Console, hotkey: HotKeyAction, text: str) -> None:
    console.print(Markdown(result_markdown(hotkey.title, text)))
    stats = result_stats(text)
    console.print(
        f"[dim]{stats['characters']} characters, {stats['words']} words[/dim]"
    )


async def _result_actions(
    orchestrator: ActionOrchestrator,
    console: Console,
    hotkey: HotKeyAction,
    snapshot: ClipboardSnapshot,
    text: str,
) -> int:
    """Prompt for follow-up actions on a one-shot result until the user quits."""
    console.print(f"[dim]{RESULT_HELP}[/dim]")
    while True:
        try:
            choice = await asyncio.to_thread(
                Prompt.ask, "[bold]Action[/bold]", choices=["y", "r", "c", "q"], default="q"
            )
        except EOFError:
            return 0
        if choice == "y":
            pyperclip.copy(text)
            console.print("[green]Copied to clipboard[/green]")
        elif choice == "r":
            outcome = await orchestrator.regenerate(hotkey, snapshot)
            if outcome.ok and outcome.text is not None:
                text = outcome.text
                _print_result(console, hotkey, text)
        elif choice == "c":
            session = orchestrator.expand_to_chat(hotkey, snapshot, text)
            return await _chat_loop(orchestrator, console, session)
        else:
            return 0


async def _chat_loop(
    orchestrator: ActionOrchestrator, console: Console, session: ConversationSession
) -> int:
    console.print(Markdown(conversation_markdown(session.messages)))
    console.print(f"[dim]{CHAT_HELP}[/dim]")
    while True:
        try:
            line = await asyncio.to_thread(Prompt.ask, "[bold]You[/bold]", default="")
        except EOFError:
            return 0
        command, _, rest = line.strip().partition(" ")
        if command == "/quit":
            return 0
        if command == "/copy":
            pyperclip.copy(session.last_assistant_text())
            continue
        if command == "/copyall":
            pyperclip.copy(conversation_text(session.messages))
            continue
        if command == "/retry":
            outcome = await orchestrator.retry_chat(session)
        elif command == "/clip":
            snapshot = await orchestrator.refresh_clipboard()
            outcome = await orchestrator.continue_chat(session, rest, snapshot)
        else:
            outcome = await orchestrator.continue_chat(session, line)
        if outcome.ok and outcome.text is not None:
            console.print(Markdown(outcome.text))


async def _run_command(args: argparse.Namespace, console: Console) -> int:
    config_path = args.config

    def preferences() -> Preferences:
        return Preferences.from_config(load_config(config_path))

    prefs = preferences()
    if args.command == "hotkeys":
        hotkeys = load_hotkeys(prefs.hotkeys_json)
        if args.json:
            console.print_json(hotkeys_to_json(hotkeys))
        else:
            for hotkey in hotkeys:
                console.print(f"[bold]{hotkey.id}[/bold]  {hotkey.title} - {hotkey.subtitle}")
        return 0

    bus = EventBus()
    _subscribe_console(bus, console)
    async with CompletionClient(
        api_key=prefs.api_key, base_url=prefs.base_url, timeout=prefs.timeout
    ) as client:
        orchestrator = ActionOrchestrator(preferences, client, bus=bus)

        if args.command == "preview":
            snapshot = await orchestrator.refresh_clipboard()
            _print_preview(console, snapshot)
            return 0
        if args.command == "run":
            return await _run_hotkey(
                orchestrator, prefs, console, args.hotkey_id, args.copy, args.once
            )
        if args.command == "chat":
            snapshot = await orchestrator.refresh_clipboard()
            session, outcome = await orchestrator.start_chat(snapshot)
            if session is None:
                return 1
            if not outcome.ok:
                console.print("[dim]Use /retry to request the first reply again.[/dim]")
            return await _chat_loop(orchestrator, console, session)
    return 2


def _print_preview(console: Console, snapshot: ClipboardSnapshot) -> None:
    console.print(f"[bold]Current Clipboard ({snapshot.kind})[/bold]")
    console.print(snapshot_preview(snapshot))
    if not snapshot.is_empty:
        console.print(f"[dim]~{snapshot_char_estimate(snapshot)} chars[/dim]")


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI flags, configure logging, and run the requested command."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = Console()

    if args.version:
        try:
            version = metadata.version("clipai")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        console.print(f"clipai {version}")
        return 0

    if args.command is None:
        parser.print_help()
        return 2

    ensure_config_dir()
    configure_logging(load_config(args.config)["logging"])
    return asyncio.run(_run_command(args, console))


if __name__ == "__main__":
    raise SystemExit(main())
