# src/dev_task_hub/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar, cast

from ..core.state import AppState
from ..hub.display import (
    by_updated_desc,
    estimate_indicator,
    filter_by_query,
    fmt_date,
    fmt_estimate,
    fmt_hms,
    is_over_estimate,
    sort_tasks,
)
from ..hub.models import Idea, Note, Task, TaskStatus
from ..hub.ticker import ElapsedTicker
from ..hub.timer import current_elapsed
from .bootstrap import read_import, save_export

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

E = TypeVar("E", Task, Note, Idea)

logger = logging.getLogger(__name__)

SHORT_ID = 8

TASK_FIELDS = {
    "title": "title",
    "desc": "description",
    "description": "description",
    "cat": "category",
    "category": "category",
    "sub": "subcategory",
    "subcategory": "subcategory",
    "tags": "tags",
    "tag": "tags",
    "est": "estimate",
    "estimate": "estimate",
    "link": "taskLink",
    "repo": "repoLink",
}
NOTE_FIELDS = {
    "title": "title",
    "body": "body",
    "cat": "category",
    "category": "category",
    "sub": "subcategory",
    "subcategory": "subcategory",
    "tags": "tags",
    "tag": "tags",
    "tasks": "linkedTaskIds",
    "task": "linkedTaskIds",
}
IDEA_FIELDS = {
    "title": "title",
    "status": "status",
    "problem": "problem",
    "approach": "approach",
    "next": "nextStep",
    "tags": "tags",
    "tag": "tags",
    "links": "links",
}

ON_VALUES = ("on", "1", "true", "yes")
OFF_VALUES = ("off", "0", "false", "no")


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----


def parse_fields(args: Sequence[str], aliases: dict[str, str]) -> tuple[str, dict[str, str], str | None]:
    """
    Split "Title words | key: value | key: value" into (title, fields, id).

    Unknown keys are ignored; `id:` selects an existing record to update.
    """
    segments = [s.strip() for s in " ".join(args).split("|")]
    title = segments[0] if segments else ""
    fields: dict[str, str] = {}
    record_id: str | None = None
    for seg in segments[1:]:
        key, sep, value = seg.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if key == "id":
            record_id = value or None
        elif key in aliases:
            fields[aliases[key]] = value
    return title, fields, record_id


def resolve(items: Sequence[E], prefix: str) -> E | str:
    """Find one item by id or unique id prefix; returns an error message otherwise."""
    prefix = (prefix or "").strip()
    if not prefix:
        return "Missing id."
    exact = [i for i in items if i.id == prefix]
    if exact:
        return exact[0]
    found = [i for i in items if i.id.startswith(prefix)]
    if not found:
        return f"No match for id '{prefix}'."
    if len(found) > 1:
        return f"Ambiguous id '{prefix}' ({len(found)} matches)."
    return found[0]


def _short(record_id: str) -> str:
    return record_id[:SHORT_ID]


def _parse_switch(args: list[str]) -> bool | None:
    if not args:
        return None
    arg = args[0].lower()
    if arg in ON_VALUES:
        return True
    if arg in OFF_VALUES:
        return False
    return None


def format_task(task: Task, now: int) -> str:
    elapsed = current_elapsed(task, now)
    line = f"[{task.status.value:<6}] {_short(task.id)}  {task.title or '(untitled)'}  {fmt_hms(elapsed)}"
    if task.estimate_ms:
        line += f" / est {fmt_hms(task.estimate_ms)} ({estimate_indicator(elapsed, task.estimate_ms)})"
        if is_over_estimate(elapsed, task.estimate_ms):
            line += " !"
    if task.category:
        line += f"  {task.category}" + (f" / {task.subcategory}" if task.subcategory else "")
    if task.tags:
        line += "  " + " ".join(f"#{t}" for t in task.tags[:4])
    return line


def format_note(note: Note) -> str:
    line = f"{_short(note.id)}  {note.title or '(untitled)'}  updated {fmt_date(note.updated_at)}"
    if note.linked_task_ids:
        line += f"  tasks: {', '.join(_short(i) for i in note.linked_task_ids)}"
    if note.tags:
        line += "  " + " ".join(f"#{t}" for t in note.tags[:4])
    return line


def format_idea(idea: Idea) -> str:
    line = f"[{idea.display_status.value:<11}] {_short(idea.id)}  {idea.title or '(untitled)'}"
    if idea.next_step:
        line += f"  next: {idea.next_step}"
    return line


# ---- commands ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    snap = state.hub.snapshot
    active = snap.active_tasks()
    return (
        "Status:\n"
        f"  Database: {state.store.db_path}\n"
        f"  Tasks: {len(snap.tasks)} ({len(active)} active), notes: {len(snap.notes)}, "
        f"ideas: {len(snap.ideas)}\n"
        f"  WIP limit (one active task): {'ON' if snap.settings.one_active_task else 'OFF'}\n"
        f"  Auto-stop on complete: {'ON' if snap.settings.auto_stop_on_complete else 'OFF'}"
    )


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                      -> all tasks, smart order
    /tasks active|todo|paused|done
    /tasks all created|oldest|time
    """
    status_filter = args[0].lower() if args else "all"
    mode = args[1].lower() if len(args) > 1 else "smart"
    if status_filter not in ("all", *(s.value for s in TaskStatus)):
        return "Usage: /tasks [all|todo|active|paused|done] [smart|created|oldest|time]"

    now = state.hub.now()
    items = [t for t in state.hub.snapshot.tasks if status_filter == "all" or t.status.value == status_filter]
    if not items:
        return "No tasks yet. Add one with /add <title>, then /start <id> to track time."
    active = len(state.hub.snapshot.active_tasks())
    lines = [f"Tasks ({active} active):"]
    lines += [format_task(t, now) for t in sort_tasks(items, mode, now=now)]
    return "\n".join(lines)


async def cmd_task(state: AppState, args: list[str]) -> str:
    found = resolve(state.hub.snapshot.tasks, args[0] if args else "")
    if isinstance(found, str):
        return found
    t = found
    now = state.hub.now()
    lines = [
        format_task(t, now),
        f"  id: {t.id}",
        f"  created: {fmt_date(t.created_at)}" + (f"  done: {fmt_date(t.completed_at)}" if t.completed_at else ""),
        f"  sessions: {len(t.sessions)}  tracked: {fmt_hms(current_elapsed(t, now))}",
    ]
    if t.estimate_ms:
        lines.append(f"  estimate: {fmt_estimate(t.estimate_ms)}")
    if t.description:
        lines.append(f"  {t.description}")
    if t.task_link:
        lines.append(f"  task link: {t.task_link}")
    if t.repo_link:
        lines.append(f"  repo link: {t.repo_link}")
    if t.note_ids:
        lines.append(f"  linked notes: {len(t.note_ids)}")
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add Fix login | tags: auth, web | est: 1.5h | cat: backend
    /add | id: 1a2b | est: 45m          (update an existing task)
    """
    title, fields, record_id = parse_fields(args, TASK_FIELDS)
    task_id = None
    if record_id:
        found = resolve(state.hub.snapshot.tasks, record_id)
        if isinstance(found, str):
            return found
        task_id = found.id
    if title:
        fields["title"] = title
    if not task_id and not fields.get("title"):
        return "Usage: /add <title> | tags: a, b | est: 1:30 | cat: x | desc: ... | link: ... | repo: ..."

    task = await state.hub.save_task(fields, task_id)
    return format_task(task, state.hub.now())


async def _timer_command(state: AppState, args: list[str], action: str) -> str:
    found = resolve(state.hub.snapshot.tasks, args[0] if args else "")
    if isinstance(found, str):
        return found

    op = {
        "start": state.hub.start_task,
        "stop": state.hub.stop_task,
        "done": state.hub.complete_task,
        "rm": state.hub.delete_task,
    }[action]
    changed = await op(found.id)
    if action == "rm":
        return f"Removed {_short(found.id)}."
    if not changed:
        return f"Nothing to do: task {_short(found.id)} is {found.status.value}."
    task = state.hub.snapshot.find_task(found.id)
    return format_task(task, state.hub.now()) if task else "OK"


async def cmd_start(state: AppState, args: list[str]) -> str:
    return await _timer_command(state, args, "start")


async def cmd_stop(state: AppState, args: list[str]) -> str:
    return await _timer_command(state, args, "stop")


async def cmd_done(state: AppState, args: list[str]) -> str:
    return await _timer_command(state, args, "done")


async def cmd_rm(state: AppState, args: list[str]) -> str:
    return await _timer_command(state, args, "rm")


async def cmd_notes(state: AppState, args: list[str]) -> str:
    notes = by_updated_desc(state.hub.snapshot.notes)
    if not notes:
        return "No notes yet. Add one with /note <title> | body: ..."
    return "\n".join(["Notes:", *(format_note(n) for n in notes)])


def _resolve_task_ids(state: AppState, raw: str) -> str:
    out = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        found = resolve(state.hub.snapshot.tasks, part)
        out.append(part if isinstance(found, str) else found.id)
    return ", ".join(out)


async def cmd_note(state: AppState, args: list[str]) -> str:
    """
    /note Deploy checklist | body: ... | tasks: 1a2b, 3c4d | tags: ops
    /note | id: 9f8e | body: ...        (update an existing note)
    """
    title, fields, record_id = parse_fields(args, NOTE_FIELDS)
    note_id = None
    if record_id:
        found = resolve(state.hub.snapshot.notes, record_id)
        if isinstance(found, str):
            return found
        note_id = found.id
    if title:
        fields["title"] = title
    if not note_id and not fields.get("title"):
        return "Usage: /note <title> | body: ... | tasks: id1, id2 | tags: a, b | cat: x"
    if "linkedTaskIds" in fields:
        fields["linkedTaskIds"] = _resolve_task_ids(state, fields["linkedTaskIds"])

    note = await state.hub.save_note(fields, note_id)
    return format_note(note)


async def cmd_rmnote(state: AppState, args: list[str]) -> str:
    found = resolve(state.hub.snapshot.notes, args[0] if args else "")
    if isinstance(found, str):
        return found
    await state.hub.delete_note(found.id)
    return f"Removed note {_short(found.id)}."


async def cmd_ideas(state: AppState, args: list[str]) -> str:
    ideas = by_updated_desc(state.hub.snapshot.ideas)
    if not ideas:
        return "No ideas yet. Add one with /idea <title> | problem: ..."
    return "\n".join(["Ideas:", *(format_idea(i) for i in ideas)])


async def cmd_idea(state: AppState, args: list[str]) -> str:
    """
    /idea Offline sync | status: researching | problem: ... | next: spike it
    /idea | id: 5d6e | status: building
    """
    title, fields, record_id = parse_fields(args, IDEA_FIELDS)
    idea_id = None
    if record_id:
        found = resolve(state.hub.snapshot.ideas, record_id)
        if isinstance(found, str):
            return found
        idea_id = found.id
    if title:
        fields["title"] = title
    if not idea_id and not fields.get("title"):
        return "Usage: /idea <title> | status: seed|researching|building|shipped | problem: ... | next: ..."

    idea = await state.hub.save_idea(fields, idea_id)
    return format_idea(idea)


async def cmd_rmidea(state: AppState, args: list[str]) -> str:
    found = resolve(state.hub.snapshot.ideas, args[0] if args else "")
    if isinstance(found, str):
        return found
    await state.hub.delete_idea(found.id)
    return f"Removed idea {_short(found.id)}."


async def cmd_find(state: AppState, args: list[str]) -> str:
    query = " ".join(args).strip()
    if not query:
        return "Usage: /find <text>"
    snap = state.hub.snapshot
    now = state.hub.now()
    lines: list[str] = []
    lines += [format_task(t, now) for t in sort_tasks(filter_by_query(snap.tasks, query), now=now)]
    lines += [f"note  {format_note(n)}" for n in filter_by_query(snap.notes, query)]
    lines += [f"idea  {format_idea(i)}" for i in filter_by_query(snap.ideas, query)]
    if not lines:
        return f"Nothing matches '{query}'."
    return "\n".join(lines)


async def cmd_wip(state: AppState, args: list[str]) -> str:
    """
    /wip          -> show status
    /wip on|off   -> allow one / many active tasks
    """
    value = _parse_switch(args)
    if value is None:
        current = state.hub.snapshot.settings.one_active_task
        return f"WIP limit is currently {'ON' if current else 'OFF'}. Use /wip on or /wip off."
    await state.hub.set_setting("one_active_task", value)
    return f"WIP limit {'ON' if value else 'OFF'}."


async def cmd_autostop(state: AppState, args: list[str]) -> str:
    value = _parse_switch(args)
    if value is None:
        current = state.hub.snapshot.settings.auto_stop_on_complete
        return f"Auto-stop on complete is currently {'ON' if current else 'OFF'}. Use /autostop on or off."
    await state.hub.set_setting("auto_stop_on_complete", value)
    return f"Auto-stop on complete {'ON' if value else 'OFF'}."


async def cmd_export(state: AppState, args: list[str]) -> str:
    try:
        path = save_export(state, " ".join(args) if args else None)
    except OSError as e:
        logger.exception("Export failed")
        return f"Export failed: {e}"
    return f"Exported to {path}"


async def cmd_import(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /import <path-to-export.json>"
    path = " ".join(args)
    try:
        text = read_import(path)
    except (OSError, UnicodeDecodeError) as e:
        return f"Import failed: cannot read {path}: {e}"
    if not await state.hub.import_json(text):
        return "Import failed: the file is not a valid export document. Nothing was changed."
    snap = state.hub.snapshot
    return f"Imported {len(snap.tasks)} tasks, {len(snap.notes)} notes, {len(snap.ideas)} ideas."


async def cmd_reset(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every task, note and idea. Confirm with: /reset yes"
    await state.hub.reset_all()
    return "All data reset."


async def cmd_repair(state: AppState, args: list[str]) -> str:
    changed = await state.hub.repair_links()
    return f"Task/note links checked; {changed} task(s) updated."


async def cmd_watch(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /watch [seconds]  -> live elapsed time of active tasks (default 10s)
    """
    try:
        seconds = float(args[0]) if args else 10.0
    except ValueError:
        return "Usage: /watch [seconds]"
    seconds = max(0.0, min(seconds, 3600.0))

    if not state.hub.snapshot.has_active():
        return "No active tasks."

    hub = state.hub

    def on_tick(elapsed: dict[str, int]) -> None:
        if emit is None:
            return
        parts = []
        for task_id, ms in elapsed.items():
            task = hub.snapshot.find_task(task_id)
            parts.append(f"{task.title if task else _short(task_id)} {fmt_hms(ms)}")
        with contextlib.suppress(Exception):
            emit(" | ".join(parts))

    ticker = ElapsedTicker(
        lambda: hub.snapshot,
        on_tick,
        interval_seconds=float(getattr(state.settings, "tick_seconds", 1.0)),
        clock=hub.now,
    )
    ticker.tick()
    ticker.ensure_running()
    try:
        await asyncio.sleep(seconds)
    finally:
        await ticker.stop()
    return f"Watched for {seconds:g}s."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage and timer settings.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [all|todo|active|paused|done] [smart|created|oldest|time].", aliases=["ls"])
registry.register("task", cmd_task, help_text="Show one task: /task <id>.")
registry.register("add", cmd_add, help_text="Add/update a task: /add <title> | tags: a, b | est: 1:30 | id: <id>.")
registry.register("start", cmd_start, help_text="Start the timer: /start <id>.")
registry.register("stop", cmd_stop, help_text="Pause the timer: /stop <id>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("notes", cmd_notes, help_text="List notes.")
registry.register("note", cmd_note, help_text="Add/update a note: /note <title> | body: ... | tasks: id1, id2.")
registry.register("rmnote", cmd_rmnote, help_text="Delete a note: /rmnote <id>.")
registry.register("ideas", cmd_ideas, help_text="List ideas.")
registry.register("idea", cmd_idea, help_text="Add/update an idea: /idea <title> | status: ... | next: ...")
registry.register("rmidea", cmd_rmidea, help_text="Delete an idea: /rmidea <id>.")
registry.register("find", cmd_find, help_text="Search tasks, notes and ideas: /find <text>.")
registry.register("wip", cmd_wip, help_text="One active task at a time: /wip on | /wip off.")
registry.register("autostop", cmd_autostop, help_text="Stop the timer when completing: /autostop on | off.")
registry.register("export", cmd_export, help_text="Export everything as JSON: /export [path].")
registry.register("import", cmd_import, help_text="Replace everything from an export: /import <path>.")
registry.register("reset", cmd_reset, help_text="Delete all tasks, notes and ideas: /reset yes.")
registry.register("repair", cmd_repair, help_text="Rebuild task -> note back references.")
registry.register("watch", cmd_watch, help_text="Live elapsed time of active tasks: /watch [seconds].")
