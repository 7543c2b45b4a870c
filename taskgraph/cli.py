#!/usr/bin/env python3
"""Taskgraph CLI - terminal editor for task dependency graphs."""
from __future__ import annotations
import json
import shlex
import sys
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel
from rich.prompt import Prompt, Confirm
from rich.table import Table
from rich.text import Text
from rich import box

from . import __version__
from .config import apply_logging, load_config
from .errors import TaskgraphError
from .graph.model import RoutingStyle
from .graph.style import ArrowKind, TaskKind
from .graph.visualizer import GraphVisualizer
from .logging import get_console
from .project_file import dump_project
from .repository import JsonProjectRepository
from .session import EditorSession

console = get_console()

TASK_KIND_STYLES = {
    TaskKind.SELECTED: "bold blue",
    TaskKind.BLOCKED: "bold red",
    TaskKind.READY: "green",
    TaskKind.DEFAULT: "",
}

ROUTING_CHOICES = [s.value for s in RoutingStyle]


class AliasedGroup(click.Group):
    """Support command aliases and report domain errors."""

    def get_command(self, ctx, cmd_name):
        aliases = {
            "ls": "projects",
            "a": "add",
            "rm": "remove",
            "l": "link",
            "s": "show",
            "t": "tree",
        }
        cmd_name = aliases.get(cmd_name, cmd_name)
        return super().get_command(ctx, cmd_name)

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except TaskgraphError as e:
            console.print(f"[red]Error: {e}")
            ctx.exit(1)


def get_session(ctx, create: bool = True) -> EditorSession:
    """Create the editing session on first use and open the requested project.

    With create=False an empty store stays empty instead of getting a starter project.
    """
    obj = ctx.find_root().obj
    if obj.get("session") is None:
        config = obj["config"]
        repository = JsonProjectRepository(obj["store"])
        session = EditorSession(
            repository,
            routing_style=config.routing_style,
            history_limit=config.history_limit,
            default_title=config.default_project_title,
        )
        if obj.get("project_id"):
            session.switch_project(obj["project_id"])
        else:
            session.open_last(create=create)
        obj["session"] = session
    return obj["session"]


@click.group(cls=AliasedGroup, invoke_without_command=True)
@click.option("--store", type=click.Path(file_okay=False), default=None, help="Project store directory")
@click.option("--project", "-p", "project_id", default=None, help="Project ID (default: last used)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error"]), default=None, help="Log level")
@click.version_option(version=__version__, prog_name="taskgraph")
@click.pass_context
def cli(ctx, store: Optional[str], project_id: Optional[str], output_json: bool, log_level: Optional[str]):
    """Taskgraph - track tasks and their completion dependencies.

    \b
    Quick start:
      taskgraph new "Release"       # Create a project
      taskgraph add "Write docs"    # Add a task
      taskgraph link 1 2            # Task 2 depends on task 1
      taskgraph done 1              # Complete a task
      taskgraph show                # Show task states
      taskgraph shell               # Interactive session with undo/redo

    \b
    Aliases:
      ls → projects, a → add, rm → remove, l → link, s → show, t → tree
    """
    config = load_config(Path.cwd())
    apply_logging(config, log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["store"] = Path(store) if store else Path(config.storage_dir)
    ctx.obj["project_id"] = project_id
    ctx.obj["json"] = output_json or config.output_format == "json"
    ctx.obj["session"] = None

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------

def render_tasks(session: EditorSession) -> Table:
    table = Table(title=session.project.title if session.project else "Tasks", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Label")
    table.add_column("State")
    table.add_column("Done")
    table.add_column("Depends on")

    state = session.state
    arrows = session.snapshot.arrows
    for task in session.snapshot.tasks:
        task_state = state.task_states[task.id]
        parents = ", ".join(a.source for a in arrows if a.target == task.id)
        table.add_row(
            task.id,
            Text(task.label),
            Text(task_state.kind.value, style=TASK_KIND_STYLES[task_state.kind]),
            "✓" if task_state.completed else "",
            parents,
        )
    return table


def render_arrows(session: EditorSession) -> Table:
    table = Table(title="Dependencies", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("From → To")
    table.add_column("Routing")
    table.add_column("State")

    for arrow in session.snapshot.arrows:
        arrow_state = session.state.arrow_states[arrow.id]
        label = "[bold red]cyclic" if arrow_state.kind == ArrowKind.CYCLIC else "normal"
        if arrow_state.selected:
            label += " (selected)"
        table.add_row(arrow.id, f"{arrow.source} → {arrow.target}", arrow.routing_style.value, label)
    return table


def show_session(session: EditorSession, as_json: bool = False) -> None:
    if as_json:
        project = session.project
        click.echo(json.dumps({
            "project": {"id": project.id, "title": project.title} if project else None,
            "state": session.state.to_dict(),
        }, ensure_ascii=False, indent=2))
        return
    if session.project is None:
        console.print("[yellow]No active project")
        return
    console.print(render_tasks(session))
    if session.snapshot.arrows:
        console.print(render_arrows(session))


# ----------------------------------------------------------------------
# Project commands
# ----------------------------------------------------------------------

@cli.command()
@click.argument("title", required=False, default=None)
@click.pass_context
def new(ctx, title: Optional[str]):
    """Create a new project and make it active."""
    session = get_session(ctx, create=False)
    project = session.new_project(title)
    console.print(f"[green]Created project[/] {project.title} [dim]({project.id})")


@cli.command()
@click.pass_context
def projects(ctx):
    """List projects."""
    session = get_session(ctx, create=False)
    active_id = session.project.id if session.project else None

    if ctx.obj["json"]:
        click.echo(json.dumps([
            {"id": p.id, "title": p.title, "tasks": len(p.tasks), "arrows": len(p.arrows), "active": p.id == active_id}
            for p in session.list_projects()
        ], ensure_ascii=False, indent=2))
        return

    table = Table(title="Projects", box=box.ROUNDED)
    table.add_column("", width=1)
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Tasks")
    table.add_column("Arrows")
    table.add_column("Last saved")

    for p in session.list_projects():
        table.add_row(
            "*" if p.id == active_id else "",
            p.id,
            p.title,
            str(len(p.tasks)),
            str(len(p.arrows)),
            p.last_saved_at or "",
        )
    console.print(table)


@cli.command()
@click.argument("project_id")
@click.pass_context
def switch(ctx, project_id: str):
    """Switch the active project."""
    session = get_session(ctx, create=False)
    project = session.switch_project(project_id)
    console.print(f"[green]Switched to[/] {project.title}")


@cli.command()
@click.argument("project_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete(ctx, project_id: str, yes: bool):
    """Delete a project."""
    session = get_session(ctx, create=False)
    if not yes and not Confirm.ask(f"Delete project {project_id}?"):
        console.print("[yellow]Cancelled")
        return
    active = session.delete_project(project_id)
    console.print(f"[green]Deleted[/] {project_id}")
    if active is None:
        console.print("[yellow]No projects left")


@cli.command("rename-project")
@click.argument("title")
@click.pass_context
def rename_project(ctx, title: str):
    """Rename the active project."""
    project = get_session(ctx).rename_project(title)
    console.print(f"[green]Renamed to[/] {project.title}")


@cli.command()
@click.pass_context
def copy(ctx):
    """Save the active project as a new copy."""
    project = get_session(ctx).copy_project()
    console.print(f"[green]Created copy[/] {project.title} [dim]({project.id})")


@cli.command("export")
@click.argument("path", type=click.Path(dir_okay=False))
@click.pass_context
def export_cmd(ctx, path: str):
    """Export the active project to a JSON file."""
    session = get_session(ctx)
    if session.project is None:
        raise TaskgraphError("No active project")
    written = dump_project(session.project, Path(path))
    console.print(f"[green]Exported to[/] {written}")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_cmd(ctx, path: str):
    """Import a project from a JSON file."""
    session = get_session(ctx, create=False)
    text = Path(path).read_text(encoding="utf-8")
    project = session.import_text(text)
    console.print(f"[green]Imported[/] {project.title} [dim]({len(project.tasks)} tasks, {len(project.arrows)} arrows)")


# ----------------------------------------------------------------------
# Graph commands
# ----------------------------------------------------------------------

@cli.command()
@click.argument("label")
@click.option("--x", type=float, default=0.0, help="Canvas x position")
@click.option("--y", type=float, default=0.0, help="Canvas y position")
@click.pass_context
def add(ctx, label: str, x: float, y: float):
    """Add a task."""
    task = get_session(ctx).add_task(label, x, y)
    console.print(f"[green]Added task[/] {task.id}: {task.label}")


@cli.command()
@click.argument("task_id")
@click.pass_context
def remove(ctx, task_id: str):
    """Remove a task and its dependencies."""
    get_session(ctx).remove_task(task_id)
    console.print(f"[green]Removed task[/] {task_id}")


@cli.command()
@click.argument("task_id")
@click.argument("text")
@click.pass_context
def label(ctx, task_id: str, text: str):
    """Change a task label."""
    get_session(ctx).edit_task(task_id, label=text)
    console.print(f"[green]Relabelled[/] {task_id}")


def _set_completed(session: EditorSession, task_id: str, completed: bool) -> None:
    result = session.set_completed(task_id, completed)
    if completed and not result:
        console.print(f"[yellow]Task {task_id} is blocked: complete its dependencies first")
    else:
        console.print(f"[green]Task {task_id}[/] {'completed' if result else 'reopened'}")


@cli.command()
@click.argument("task_id")
@click.pass_context
def done(ctx, task_id: str):
    """Mark a task completed (only when its dependencies are completed)."""
    _set_completed(get_session(ctx), task_id, True)


@cli.command()
@click.argument("task_id")
@click.pass_context
def undone(ctx, task_id: str):
    """Mark a task not completed."""
    _set_completed(get_session(ctx), task_id, False)


@cli.command()
@click.argument("task_id")
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.pass_context
def move(ctx, task_id: str, x: float, y: float):
    """Move a task on the canvas."""
    get_session(ctx).move_task(task_id, x, y)
    console.print(f"[green]Moved[/] {task_id} to ({x:g}, {y:g})")


@cli.command()
@click.argument("source")
@click.argument("target")
@click.pass_context
def link(ctx, source: str, target: str):
    """Add a dependency: SOURCE must complete before TARGET."""
    session = get_session(ctx)
    arrow = session.add_arrow(source, target)
    if arrow is None:
        console.print(f"[yellow]Dependency {source} → {target} already exists")
        return
    console.print(f"[green]Linked[/] {arrow.id}: {source} → {target}")
    if arrow.id in session.state.cyclic_arrow_ids:
        console.print("[red]Warning: this dependency creates a cycle")


@cli.command()
@click.argument("arrow_id")
@click.pass_context
def unlink(ctx, arrow_id: str):
    """Remove a dependency."""
    if get_session(ctx).remove_arrow(arrow_id):
        console.print(f"[green]Removed dependency[/] {arrow_id}")
    else:
        console.print(f"[yellow]No dependency {arrow_id}")


@cli.command()
@click.argument("style", type=click.Choice(ROUTING_CHOICES))
@click.pass_context
def routing(ctx, style: str):
    """Set the routing style of all dependencies.

    The style is saved with the project and used for new dependencies.
    New projects start with routing_style from .taskgraphrc.
    """
    get_session(ctx).set_routing_style(RoutingStyle(style))
    console.print(f"[green]Routing style:[/] {style}")


@cli.command()
@click.pass_context
def show(ctx):
    """Show task and dependency states."""
    show_session(get_session(ctx), ctx.obj["json"])


@cli.command()
@click.pass_context
def tree(ctx):
    """Show the dependency tree."""
    session = get_session(ctx)
    visualizer = GraphVisualizer(session.snapshot, session.state)
    console.print(Panel(Text(visualizer.render_tree() or "(empty)"), title=session.project.title if session.project else ""))
    console.print(Text(visualizer.render_summary()))


@cli.command()
@click.pass_context
def cycles(ctx):
    """List dependencies that form cycles."""
    session = get_session(ctx)
    cyclic = [a for a in session.snapshot.arrows if a.id in session.state.cyclic_arrow_ids]

    if ctx.obj["json"]:
        click.echo(json.dumps([a.id for a in cyclic]))
        return

    if not cyclic:
        console.print("[green]No cycles")
        return
    for arrow in cyclic:
        console.print(f"[red]↺ {arrow.id}[/]: {arrow.source} → {arrow.target}")


# ----------------------------------------------------------------------
# Interactive shell
# ----------------------------------------------------------------------

SHELL_HELP = """
[bold]Commands[/]
  add LABEL              remove ID            label ID TEXT
  done ID                undone ID            move ID X Y
  link SRC DST           unlink ARROW_ID      routing STYLE
  select ID              select-arrow ID      clear
  delete                 undo                 redo
  show                   tree                 cycles
  help                   quit
""".strip()


def run_shell_command(session: EditorSession, line: str) -> bool:
    """Run one shell line. Returns False when the shell should exit."""
    try:
        parts = shlex.split(line)
    except ValueError as e:
        console.print(f"[red]{e}")
        return True
    if not parts:
        return True

    cmd, args = parts[0].lower(), parts[1:]

    if cmd in ("quit", "exit", "q"):
        return False
    if cmd == "help":
        console.print(SHELL_HELP)
        return True

    handlers = {
        "add": lambda: console.print(f"Added task {session.add_task(' '.join(args) or None).id}"),
        "remove": lambda: session.remove_task(args[0]),
        "label": lambda: session.edit_task(args[0], label=" ".join(args[1:])),
        "done": lambda: _set_completed(session, args[0], True),
        "undone": lambda: _set_completed(session, args[0], False),
        "move": lambda: session.move_task(args[0], float(args[1]), float(args[2])),
        "link": lambda: session.add_arrow(args[0], args[1]) or console.print("[yellow]Already linked"),
        "unlink": lambda: session.remove_arrow(args[0]),
        "routing": lambda: session.set_routing_style(RoutingStyle.parse(args[0])),
        "select": lambda: session.select_task(args[0]),
        "select-arrow": lambda: session.select_arrow(args[0]),
        "clear": session.clear_selection,
        "delete": lambda: session.delete_selected() or console.print("[yellow]Nothing selected"),
        "undo": lambda: session.undo() or console.print("[yellow]Nothing to undo"),
        "redo": lambda: session.redo() or console.print("[yellow]Nothing to redo"),
        "show": lambda: show_session(session),
        "tree": lambda: console.print(Text(GraphVisualizer(session.snapshot, session.state).render_tree())),
        "cycles": lambda: console.print(", ".join(sorted(session.state.cyclic_arrow_ids)) or "No cycles"),
    }

    handler = handlers.get(cmd)
    if handler is None:
        console.print(f"[red]Unknown command: {cmd}[/] (type 'help')")
        return True

    try:
        handler()
    except IndexError:
        console.print(f"[red]Missing arguments for {cmd}[/] (type 'help')")
    except ValueError as e:
        console.print(f"[red]Invalid argument: {e}")
    except TaskgraphError as e:
        console.print(f"[red]Error: {e}")
    return True


@cli.command()
@click.pass_context
def shell(ctx):
    """Interactive editing session with undo/redo."""
    session = get_session(ctx)
    console.print(f"[bold]{session.project.title if session.project else 'taskgraph'}[/] - type 'help' for commands")
    while True:
        try:
            line = Prompt.ask("[cyan]taskgraph")
        except EOFError:
            break
        if not run_shell_command(session, line):
            break


def main():
    """Entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
