"""Command registry and interpreter for `>` input lines."""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from config import DEFAULT_FOCUS_MINUTES
from views import AgendaView, HelpView, JournalView, ProjectView, TemplatesView


@dataclass(frozen=True)
class CommandDef:
    name: str
    description: str
    category: str                   # navigation | action | view | system
    aliases: Tuple[str, ...] = ()


COMMAND_REGISTRY: List[CommandDef] = [
    CommandDef("home", "Dashboard with upcoming & due tasks", "navigation"),
    CommandDef("agenda", "Deadlines & scheduled tasks", "view"),
    CommandDef("help", "Show command reference", "view"),
    CommandDef("focus", "Start focus timer (minutes)", "action", ("pomodoro",)),
    CommandDef("use", "Switch to project context", "navigation"),
    CommandDef("templates", "Manage task templates", "view"),
    CommandDef("template save", "Save current tasks as template", "action"),
    CommandDef("template apply", "Apply a template", "action"),
    CommandDef("template delete", "Delete a template", "action"),
    CommandDef("delete", "Delete a project (> delete slug)", "action", ("rm",)),
    CommandDef("journal", "View journal entries", "view", ("log",)),
    CommandDef("settings", "Open settings panel", "system"),
]


def filter_commands(query: str) -> List[CommandDef]:
    """Commands whose name or alias starts with `query`, or whose description contains it."""
    q = query.strip().lower()
    if not q:
        return list(COMMAND_REGISTRY)
    return [
        cmd for cmd in COMMAND_REGISTRY
        if cmd.name.startswith(q)
        or any(alias.startswith(q) for alias in cmd.aliases)
        or q in cmd.description.lower()
    ]


def _parse_minutes(args: List[str]) -> int:
    if args and args[0].isdigit() and int(args[0]) > 0:
        return int(args[0])
    return DEFAULT_FOCUS_MINUTES


def _home(store, args):
    store.go_home()


def _agenda(store, args):
    store.push_view(AgendaView())


def _help(store, args):
    store.push_view(HelpView())


def _templates(store, args):
    store.push_view(TemplatesView())


def _template(store, args):
    sub = args[0].lower() if args else ""
    name = " ".join(args[1:])
    if sub not in ("save", "apply", "delete") or not name:
        store.show_toast("Usage: template save|apply|delete <name>")
        return
    if sub == "save":
        store.save_template(name)
        return

    template = store.find_template(name)
    if template is None:
        store.show_toast(f'Template "{name}" not found')
    elif sub == "apply":
        store.apply_template(template.id)
    else:
        store.delete_template(template.id)


def _focus(store, args):
    store.start_focus(_parse_minutes(args))


def _use(store, args):
    if not args:
        store.show_toast("Usage: use <project-slug>")
        return
    project = store.ensure_project(args[0])
    if project is not None:
        store.push_view(ProjectView(project.id))


def _journal(store, args):
    store.push_view(JournalView(store.current_project_id()))


def _settings(store, args):
    store.open_settings()


def _delete(store, args):
    if not args:
        store.show_toast("Usage: delete <project-slug>")
        return
    store.delete_project(args[0])


_HANDLERS: Dict[str, Callable] = {
    "home": _home,
    "agenda": _agenda,
    "help": _help,
    "templates": _templates,
    "template": _template,
    "focus": _focus,
    "pomodoro": _focus,
    "use": _use,
    "journal": _journal,
    "log": _journal,
    "settings": _settings,
    "delete": _delete,
    "rm": _delete,
}


def execute_command(store, text: str) -> None:
    """
    Run one command line against the store.

    Args:
        store: The VisorStore to act on.
        text: Command text without the leading `>` or `/`.
    """
    parts = text.split()
    if not parts:
        return
    verb, args = parts[0].lower(), parts[1:]

    handler = _HANDLERS.get(verb)
    if handler is None:
        store.show_toast(f"Unknown command: {verb}")
        store.push_view(HelpView())
        return
    handler(store, args)
