"""Built-in command table and handlers.

Every built-in is a member of the closed ``BuiltinCommand`` enum. The module
refuses to import if a member has no handler or no description, so an
unhandled command fails at load time rather than when a user types it.

Handlers take a ``CommandContext`` and the argument tokens and return a
``CommandResult``. They talk to the tree only through VFS operations and
render VFS errors as text.
"""

import fnmatch
import logging
import threading
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, Field

from terminal.history import CommandHistory
from terminal.models import CommandResult
from workspace.errors import ErrorKind
from workspace.git import GitCollaborator, GitError
from workspace.node import ROOT_ID, FileNode, NodeKind, utc_now
from workspace.settings import SHELL_TYPES, WorkspaceSettings
from workspace.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)


class BuiltinCommand(str, Enum):
    """Every command the interpreter understands."""

    HELP = "help"
    LS = "ls"
    CD = "cd"
    PWD = "pwd"
    CAT = "cat"
    MKDIR = "mkdir"
    TOUCH = "touch"
    RM = "rm"
    RMDIR = "rmdir"
    CP = "cp"
    MV = "mv"
    CLEAR = "clear"
    ECHO = "echo"
    WHOAMI = "whoami"
    DATE = "date"
    FIND = "find"
    GREP = "grep"
    HEAD = "head"
    TAIL = "tail"
    WC = "wc"
    PS = "ps"
    DF = "df"
    DU = "du"
    HISTORY = "history"
    ENV = "env"
    SHELL = "shell"
    AI = "ai"
    GIT = "git"


COMMAND_DESCRIPTIONS: dict[BuiltinCommand, str] = {
    BuiltinCommand.HELP: "Show all available commands",
    BuiltinCommand.LS: "List directory contents",
    BuiltinCommand.CD: "Change directory",
    BuiltinCommand.PWD: "Print working directory",
    BuiltinCommand.CAT: "Display file contents",
    BuiltinCommand.MKDIR: "Create new directory",
    BuiltinCommand.TOUCH: "Create new file",
    BuiltinCommand.RM: "Remove files/directories",
    BuiltinCommand.RMDIR: "Remove empty directory",
    BuiltinCommand.CP: "Copy files/directories",
    BuiltinCommand.MV: "Move/rename files",
    BuiltinCommand.CLEAR: "Clear terminal screen",
    BuiltinCommand.ECHO: "Display text",
    BuiltinCommand.WHOAMI: "Display current user",
    BuiltinCommand.DATE: "Show current date and time",
    BuiltinCommand.FIND: "Search for files",
    BuiltinCommand.GREP: "Search text in files",
    BuiltinCommand.HEAD: "Show first lines of file",
    BuiltinCommand.TAIL: "Show last lines of file",
    BuiltinCommand.WC: "Word count",
    BuiltinCommand.PS: "Show running processes",
    BuiltinCommand.DF: "Disk space usage",
    BuiltinCommand.DU: "Directory space usage",
    BuiltinCommand.HISTORY: "Show command history",
    BuiltinCommand.ENV: "Show environment variables",
    BuiltinCommand.SHELL: "Show or switch the shell",
    BuiltinCommand.AI: "AI tools (fix, build, optimize, ...)",
    BuiltinCommand.GIT: "Version control",
}

AI_SUBCOMMANDS = {
    "fix": "Fix code issues and bugs",
    "build": "Build and compile project",
    "optimize": "Optimize code performance",
    "explain": "Explain code functionality",
    "deploy": "Deploy to production",
    "test": "Run tests and generate reports",
    "analyze": "Analyze code complexity",
    "generate": "Generate code from specs",
}

AI_RESULTS = {
    "fix": (
        "✅ Code issues fixed!\n\nFixed 3 syntax errors\nAdded 2 null checks\n"
        "Improved error handling\nOptimized 2 functions"
    ),
    "build": (
        "✅ Build successful!\n\nCompiled 15 files\n0 errors, 2 warnings\n"
        "Build size: 2.3MB\nBuild time: 1.2s"
    ),
    "optimize": (
        "✅ Code optimized!\n\nPerformance improved by 40%\nMemory usage reduced by 25%\n"
        "Removed redundant code\nAdded caching layer"
    ),
}

GIT_SUBCOMMANDS = (
    "init", "status", "add", "reset", "commit", "branch", "checkout", "log", "push", "pull",
)

GIT_UNAVAILABLE = "Git service not initialized. Try re-opening the folder."

PLACEHOLDER_PERMISSIONS = {NodeKind.DIRECTORY: "drwxr-xr-x", NodeKind.FILE: "-rw-r--r--"}

RULE = "─" * 40


class CommandContext(BaseModel):
    """Everything a handler may read or change.

    Handlers change the working directory and shell by assigning ``cwd`` and
    ``shell``; the interpreter copies them back after dispatch.

    Attributes:
        vfs: The shared virtual file system.
        settings: Workspace settings.
        history: The terminal's history ring.
        cwd: Absolute working directory path.
        shell: Current shell flavour.
        git: Git collaborator, if one is attached.
        stop_event: Set when the owning interpreter shuts down.
        clear_requested: Set by ``clear``.
        deferred: Job scheduled by an asynchronous built-in.
    """

    vfs: VirtualFileSystem
    settings: WorkspaceSettings
    history: CommandHistory
    cwd: str
    shell: str = "henu"
    git: Optional[GitCollaborator] = None
    stop_event: threading.Event = Field(default_factory=threading.Event)
    clear_requested: bool = False
    deferred: Optional[Callable[[], CommandResult]] = None

    class Config:
        arbitrary_types_allowed = True

    def defer(self, job: Callable[[], CommandResult]) -> None:
        """Schedule ``job`` to complete this command's entry asynchronously."""
        self.deferred = job

    def resolve(self, path: str) -> Optional[FileNode]:
        return self.vfs.resolve_path(path, self.cwd)


# ===== Helpers =====


def _ok(output: str = "") -> CommandResult:
    return CommandResult(output=output)


def _error(output: str) -> CommandResult:
    return CommandResult(output=output, is_error=True)


def _split_flags(args: list[str]) -> tuple[set[str], list[str]]:
    """Separate ``-x`` style flags from operands."""
    flags = {arg for arg in args if arg.startswith("-") and len(arg) > 1}
    operands = [arg for arg in args if arg not in flags]
    return flags, operands


def _has_flag(flags: set[str], letter: str) -> bool:
    return any(letter in flag[1:] for flag in flags if not flag.startswith("--"))


def _split_path(path: str) -> tuple[str, str]:
    """Split ``path`` into (parent path, last segment)."""
    trimmed = path.rstrip("/") or path
    head, sep, name = trimmed.rpartition("/")
    if not sep:
        return ".", trimmed
    return head or "/", name


def _strip_quotes(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    return token


def _read_file(ctx: CommandContext, command: str, path: str):
    """Resolve ``path`` to a file or return an error result."""
    node = ctx.resolve(path)
    if node is None:
        return None, _error(f"{command}: {path}: No such file or directory")
    if node.is_directory:
        return None, _error(f"{command}: {path}: Is a directory")
    return node, None


def _line_count(ctx: CommandContext, command: str, args: list[str]):
    """Parse ``[-n N] file`` for head/tail."""
    count = 10
    operands = []
    index = 0
    while index < len(args):
        if args[index] == "-n":
            if index + 1 >= len(args):
                return None, None, _error(f"{command}: option requires an argument -- 'n'")
            value = args[index + 1]
            try:
                count = int(value)
            except ValueError:
                count = -1
            if count < 0:
                return None, None, _error(f"{command}: invalid number of lines: '{value}'")
            index += 2
            continue
        operands.append(args[index])
        index += 1
    if not operands:
        return None, None, _error(f"Usage: {command} [-n lines] <file>")
    return count, operands[0], None


def _resolve_destination(ctx: CommandContext, source: FileNode, destination: str):
    """Work out (parent id, new name) for cp/mv.

    An existing destination directory receives the source under its own
    name; otherwise the destination's last segment becomes the new name.
    """
    target = ctx.resolve(destination)
    if target is not None and target.is_directory:
        return target, source.name
    parent_path, name = _split_path(destination)
    parent = ctx.resolve(parent_path)
    if parent is None or not parent.is_directory:
        return None, name
    return parent, name


# ===== Handlers =====


def _help(ctx: CommandContext, args: list[str]) -> CommandResult:
    lines = ["📋 HENU Terminal Commands", "═" * 60, ""]
    for command, description in COMMAND_DESCRIPTIONS.items():
        lines.append(f"  {command.value:<10} {description}")
    lines.extend([
        "",
        "📁 File Operations: ls, cd, cat, mkdir, touch, rm, cp, mv",
        "🔍 Search: find, grep",
        "📊 Text Processing: head, tail, wc",
        "🤖 AI Tools: ai <fix|build|optimize|explain|deploy|test|analyze|generate>",
        "",
        "💡 Tips: Use Tab for autocomplete, ↑/↓ for history, Ctrl+L to clear",
    ])
    return _ok("\n".join(lines))


def _long_row(node: FileNode, name: Optional[str] = None) -> str:
    modified = node.modified_at.astimezone().strftime("%Y-%m-%d %H:%M")
    permissions = PLACEHOLDER_PERMISSIONS[node.kind]
    display = name if name is not None else node.name + ("/" if node.is_directory else "")
    return f"{permissions}  {node.size:>8}  {modified}  {display}"


def _ls(ctx: CommandContext, args: list[str]) -> CommandResult:
    flags, operands = _split_flags(args)
    long_format = _has_flag(flags, "l")
    show_all = _has_flag(flags, "a")
    target = operands[0] if operands else "."

    node = ctx.resolve(target)
    if node is None:
        return _error(f"ls: cannot access '{target}': No such file or directory")

    if node.is_file:
        entries = [node]
    else:
        entries = ctx.vfs.children_of(node.id)
        if not show_all:
            entries = [entry for entry in entries if not entry.is_hidden]

    if long_format:
        rows = [f"{'Permissions':<10}  {'Size':>8}  {'Modified':<16}  Name", "-" * 50]
        if show_all and node.is_directory:
            parent = ctx.vfs.get_parent(node.id) or node
            rows.append(_long_row(node, "."))
            rows.append(_long_row(parent, ".."))
        rows.extend(_long_row(entry) for entry in entries)
        return _ok("\n".join(rows))

    names = [entry.name + ("/" if entry.is_directory else "") for entry in entries]
    if show_all and node.is_directory:
        names = [".", ".."] + names
    if not names:
        return _ok("(empty directory)")
    return _ok("  ".join(names))


def _cd(ctx: CommandContext, args: list[str]) -> CommandResult:
    target = args[0] if args else "~"
    node = ctx.resolve(target)
    if node is None or not node.is_directory:
        return _error(f"cd: {target}: No such directory")
    ctx.cwd = ctx.vfs.path_of(node.id)
    return _ok()


def _pwd(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok(ctx.cwd)


def _cat(ctx: CommandContext, args: list[str]) -> CommandResult:
    if not args:
        return _error("Usage: cat <filename> [filename2 ...]")
    blocks = []
    failed = False
    for path in args:
        node = ctx.resolve(path)
        if node is None:
            blocks.append(f"cat: {path}: No such file or directory")
            failed = True
        elif node.is_directory:
            blocks.append(f"cat: {path}: Is a directory")
            failed = True
        else:
            blocks.append(f"{path}:\n{RULE}\n{node.content or '(empty file)'}")
    return CommandResult(output="\n\n".join(blocks), is_error=failed)


def _mkdir(ctx: CommandContext, args: list[str]) -> CommandResult:
    flags, operands = _split_flags(args)
    if not operands:
        return _error("Usage: mkdir [-p] <directory_name> [...]")
    lines = []
    failed = False
    for path in operands:
        if _has_flag(flags, "p"):
            existing = ctx.resolve(path)
            if existing is not None and existing.is_directory:
                continue
            result = ctx.vfs.ensure_directories(path, ctx.cwd)
        else:
            parent_path, name = _split_path(path)
            parent = ctx.resolve(parent_path)
            if parent is None or not parent.is_directory:
                lines.append(f"mkdir: cannot create directory '{path}': No such file or directory")
                failed = True
                continue
            result = ctx.vfs.create(NodeKind.DIRECTORY, name, parent.id)
        if result.ok:
            lines.append(f"Created directory: {path}")
        elif result.error.kind == ErrorKind.ALREADY_EXISTS:
            lines.append(f"mkdir: cannot create directory '{path}': File exists")
            failed = True
        else:
            lines.append(f"mkdir: cannot create directory '{path}': {result.message}")
            failed = True
    return CommandResult(output="\n".join(lines), is_error=failed)


def _touch(ctx: CommandContext, args: list[str]) -> CommandResult:
    if not args:
        return _error("Usage: touch <filename> [...]")
    lines = []
    failed = False
    for path in args:
        existing = ctx.resolve(path)
        if existing is not None:
            result = ctx.vfs.touch(existing.id)
            if not result.ok:
                lines.append(f"touch: cannot touch '{path}': {result.message}")
                failed = True
            continue
        parent_path, name = _split_path(path)
        parent = ctx.resolve(parent_path)
        if parent is None or not parent.is_directory:
            lines.append(f"touch: cannot touch '{path}': No such file or directory")
            failed = True
            continue
        result = ctx.vfs.create(NodeKind.FILE, name, parent.id)
        if result.ok:
            lines.append(f"Created file: {path}")
        else:
            lines.append(f"touch: cannot touch '{path}': {result.message}")
            failed = True
    return CommandResult(output="\n".join(lines), is_error=failed)


def _rm(ctx: CommandContext, args: list[str]) -> CommandResult:
    flags, operands = _split_flags(args)
    recursive = _has_flag(flags, "r") or _has_flag(flags, "R")
    force = _has_flag(flags, "f")
    if not operands:
        return _ok() if force else _error("Usage: rm <file> or rm -r <directory>")

    lines = []
    failed = False
    for path in operands:
        node = ctx.resolve(path)
        if node is None:
            if not force:
                lines.append(f"rm: cannot remove '{path}': No such file or directory")
                failed = True
            continue
        if node.id == ROOT_ID:
            lines.append(f"rm: it is dangerous to operate recursively on '{path}'")
            failed = True
            continue
        if node.is_directory and not recursive:
            reason = "Directory not empty" if node.children else "Is a directory"
            lines.append(f"rm: cannot remove '{path}': {reason}")
            failed = True
            continue
        result = ctx.vfs.delete(node.id, recursive=recursive)
        if result.ok:
            lines.append(f"Removed: {path}")
        else:
            lines.append(f"rm: cannot remove '{path}': {result.message}")
            failed = True
    return CommandResult(output="\n".join(lines), is_error=failed)


def _rmdir(ctx: CommandContext, args: list[str]) -> CommandResult:
    if not args:
        return _error("Usage: rmdir <directory_name> [...]")
    lines = []
    failed = False
    for path in args:
        node = ctx.resolve(path)
        if node is None:
            reason = "No such file or directory"
        elif node.is_file:
            reason = "Not a directory"
        elif node.children:
            reason = "Directory not empty"
        elif node.id == ROOT_ID:
            reason = "Device or resource busy"
        else:
            result = ctx.vfs.delete(node.id)
            if result.ok:
                lines.append(f"Removed directory: {path}")
                continue
            reason = result.message
        lines.append(f"rmdir: failed to remove '{path}': {reason}")
        failed = True
    return CommandResult(output="\n".join(lines), is_error=failed)


def _cp(ctx: CommandContext, args: list[str]) -> CommandResult:
    flags, operands = _split_flags(args)
    if len(operands) != 2:
        return _error("Usage: cp [-r] <source> <destination>")
    source_path, destination = operands
    source = ctx.resolve(source_path)
    if source is None:
        return _error(f"cp: cannot stat '{source_path}': No such file or directory")
    if source.is_directory and not (_has_flag(flags, "r") or _has_flag(flags, "R")):
        return _error(f"cp: -r not specified; omitting directory '{source_path}'")

    parent, name = _resolve_destination(ctx, source, destination)
    if parent is None:
        return _error(f"cp: cannot create '{destination}': No such file or directory")

    existing = ctx.vfs.resolve_path(name, ctx.vfs.path_of(parent.id))
    if existing is not None and existing.id == source.id:
        return _error(f"cp: '{source_path}' and '{destination}' are the same file")
    if existing is not None and existing.is_file and source.is_file:
        result = ctx.vfs.set_content(existing.id, source.content)
    else:
        result = ctx.vfs.copy(source.id, parent.id, name)
    if not result.ok:
        return _error(f"cp: cannot copy '{source_path}' to '{destination}': {result.message}")
    return _ok()


def _mv(ctx: CommandContext, args: list[str]) -> CommandResult:
    _, operands = _split_flags(args)
    if len(operands) != 2:
        return _error("Usage: mv <source> <destination>")
    source_path, destination = operands
    source = ctx.resolve(source_path)
    if source is None:
        return _error(f"mv: cannot stat '{source_path}': No such file or directory")

    parent, name = _resolve_destination(ctx, source, destination)
    if parent is None:
        return _error(f"mv: cannot move '{source_path}' to '{destination}': No such file or directory")

    source_abs = ctx.vfs.path_of(source.id)
    parent_abs = ctx.vfs.path_of(parent.id)
    if source.is_directory and (parent_abs == source_abs or parent_abs.startswith(source_abs.rstrip("/") + "/")):
        return _error(
            f"mv: cannot move '{source_path}' to a subdirectory of itself, '{destination}'"
        )

    result = ctx.vfs.move(source.id, parent.id, name)
    if not result.ok:
        return _error(f"mv: cannot move '{source_path}' to '{destination}': {result.message}")
    return _ok()


def _clear(ctx: CommandContext, args: list[str]) -> CommandResult:
    ctx.clear_requested = True
    return _ok()


def _echo(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok(" ".join(args))


def _whoami(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok(ctx.settings.username)


def _date(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok(utc_now().astimezone().strftime("%a %b %d %H:%M:%S %Z %Y"))


def _find(ctx: CommandContext, args: list[str]) -> CommandResult:
    start_path = "."
    pattern = None
    kind = None
    index = 0
    while index < len(args):
        token = args[index]
        if token in ("-name", "-type"):
            if index + 1 >= len(args):
                return _error(f"find: missing argument to `{token}'")
            value = _strip_quotes(args[index + 1])
            if token == "-name":
                pattern = value
            elif value in ("f", "d"):
                kind = NodeKind.FILE if value == "f" else NodeKind.DIRECTORY
            else:
                return _error(f"find: Unknown argument to -type: {value}")
            index += 2
            continue
        start_path = token
        index += 1

    start = ctx.resolve(start_path)
    if start is None:
        return _error(f"find: '{start_path}': No such file or directory")

    matches = []
    for node in ctx.vfs.walk(start.id):
        if pattern is not None and (node.id == ROOT_ID or not fnmatch.fnmatchcase(node.name, pattern)):
            continue
        if kind is not None and node.kind != kind:
            continue
        matches.append(ctx.vfs.path_of(node.id))
    return _ok("\n".join(matches))


def _grep(ctx: CommandContext, args: list[str]) -> CommandResult:
    flags, operands = _split_flags(args)
    if len(operands) < 2:
        return _error("Usage: grep [-i] [-n] <pattern> <file>")
    pattern = _strip_quotes(operands[0])
    path = operands[1]
    node, failure = _read_file(ctx, "grep", path)
    if failure:
        return failure

    ignore_case = _has_flag(flags, "i")
    numbered = _has_flag(flags, "n")
    needle = pattern.lower() if ignore_case else pattern
    matches = []
    for number, line in enumerate(node.content.split("\n"), start=1):
        haystack = line.lower() if ignore_case else line
        if needle in haystack:
            matches.append(f"{number}:{line}" if numbered else line)
    if not matches:
        return _ok(f'No matches found for "{pattern}" in {path}')
    return _ok("\n".join(matches))


def _head(ctx: CommandContext, args: list[str]) -> CommandResult:
    count, path, failure = _line_count(ctx, "head", args)
    if failure:
        return failure
    node, failure = _read_file(ctx, "head", path)
    if failure:
        return failure
    lines = node.content.split("\n") if node.content else []
    return _ok("\n".join(lines[:count]))


def _tail(ctx: CommandContext, args: list[str]) -> CommandResult:
    count, path, failure = _line_count(ctx, "tail", args)
    if failure:
        return failure
    node, failure = _read_file(ctx, "tail", path)
    if failure:
        return failure
    lines = node.content.split("\n") if node.content else []
    return _ok("\n".join(lines[-count:] if count else []))


def _wc(ctx: CommandContext, args: list[str]) -> CommandResult:
    if not args:
        return _error("Usage: wc <file>")
    node, failure = _read_file(ctx, "wc", args[0])
    if failure:
        return failure
    content = node.content
    lines = len(content.split("\n")) if content else 0
    return _ok(f"{lines}\t{len(content.split())}\t{len(content)}\t{args[0]}")


def _ps(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok(
        "PID\tTTY\tTIME\tCMD\n"
        "1\ttty1\t00:00:01\tinit\n"
        "123\ttty1\t00:00:15\tbash\n"
        "456\ttty1\t00:01:23\tnode\n"
        "789\ttty1\t00:00:05\tterminal"
    )


def _df(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok(
        "Filesystem\tSize\tUsed\tAvail\tUse%\tMounted on\n"
        "/dev/sda1\t50G\t15G\t32G\t31%\t/\n"
        "tmpfs\t2.0G\t0\t2.0G\t0%\t/tmp"
    )


def _du(ctx: CommandContext, args: list[str]) -> CommandResult:
    target = args[0] if args else "."
    node = ctx.resolve(target)
    if node is None:
        return _error(f"du: cannot access '{target}': No such file or directory")
    return _ok(f"{ctx.vfs.subtree_size(node.id)}\t{ctx.vfs.path_of(node.id)}")


def _history(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok("\n".join(f"{index}  {line}" for index, line in ctx.history.numbered()))


def _env(ctx: CommandContext, args: list[str]) -> CommandResult:
    return _ok(
        "\n".join([
            f"USER={ctx.settings.username}",
            f"HOME={ctx.settings.home}",
            "PATH=/usr/local/bin:/usr/bin:/bin",
            f"PWD={ctx.cwd}",
            "SHELL=/bin/bash",
            "TERM=xterm-256color",
        ])
    )


def _shell(ctx: CommandContext, args: list[str]) -> CommandResult:
    if not args:
        return _ok(f"Current shell: {ctx.shell}\nAvailable: {', '.join(SHELL_TYPES)}")
    requested = args[0].lower()
    if requested not in SHELL_TYPES:
        return _error(f"Unknown shell: {args[0]}")
    ctx.shell = requested
    return _ok(f"Switched to {requested}")


def _ai(ctx: CommandContext, args: list[str]) -> CommandResult:
    if not args:
        lines = ["🤖 HENU AI Tools", "═" * 40]
        lines.extend(f"  ai {name:<12} {description}" for name, description in AI_SUBCOMMANDS.items())
        return _ok("\n".join(lines))

    subcommand = args[0].lower()
    if subcommand not in AI_SUBCOMMANDS:
        return _error(f"Invalid ai command: {args[0]}\nUse 'ai' for available commands")

    delay = ctx.settings.ai_delay_seconds
    stop_event = ctx.stop_event

    def complete() -> CommandResult:
        if stop_event.wait(delay):
            return _error("⚠️ Cancelled")
        summary = AI_RESULTS.get(subcommand, f"✅ {subcommand.capitalize()} completed successfully!")
        return _ok(summary)

    ctx.defer(complete)
    return _ok(
        f'🤖 HENU AI: Processing "{subcommand}" command...\n'
        "⏳ Initializing AI model...\n"
        "🔍 Analyzing current context...\n"
        "💡 Generating solution...\n\n"
    )


# ----- git -----


def _git_init(git: GitCollaborator, args: list[str]) -> CommandResult:
    return _ok(git.init())


def _git_status(git: GitCollaborator, args: list[str]) -> CommandResult:
    status = git.status()
    lines = [f"On branch {status.branch}"]
    if status.ahead:
        lines.append(f"Your branch is ahead by {status.ahead} commit(s).")
    if status.behind:
        lines.append(f"Your branch is behind by {status.behind} commit(s).")
    lines.append("")
    if status.staged:
        lines.append("Changes to be committed:")
        lines.extend(f"  modified: {path}" for path in status.staged)
    if status.modified:
        lines.append("")
        lines.append("Changes not staged for commit:")
        lines.extend(f"  modified: {path}" for path in status.modified)
    if status.untracked:
        lines.append("")
        lines.append("Untracked files:")
        lines.extend(f"  {path}" for path in status.untracked)
    if status.clean:
        lines.append("nothing to commit, working tree clean")
    return _ok("\n".join(lines))


def _git_add(git: GitCollaborator, args: list[str]) -> CommandResult:
    if not args:
        return _ok("Nothing specified, nothing added.")
    git.add(args)
    return _ok(f"Added {' '.join(args)}")


def _git_reset(git: GitCollaborator, args: list[str]) -> CommandResult:
    if not args:
        return _error("Usage: git reset <path>")
    for path in args:
        git.reset(path)
    return _ok("\n".join(f"Unstaged {path}" for path in args))


def _git_commit(git: GitCollaborator, args: list[str]) -> CommandResult:
    if "-m" not in args or args.index("-m") + 1 >= len(args):
        return _error('Aborting commit due to empty commit message.\nUse: git commit -m "message"')
    message = " ".join(args[args.index("-m") + 1:]).replace('"', "").replace("'", "")
    oid = git.commit(message)
    return _ok(f"[{git.status().branch} {oid[:7]}] {message}")


def _git_branch(git: GitCollaborator, args: list[str]) -> CommandResult:
    if args:
        git.create_branch(args[0])
        return _ok(f"Created branch {args[0]}")
    return _ok(
        "\n".join(
            f"* {branch.name}" if branch.current else f"  {branch.name}"
            for branch in git.list_branches()
        )
    )


def _git_checkout(git: GitCollaborator, args: list[str]) -> CommandResult:
    if args and args[0] == "-b":
        if len(args) < 2:
            return _error("error: switch `b' requires a value")
        git.create_branch(args[1])
        git.checkout(args[1])
        return _ok(f"Switched to a new branch '{args[1]}'")
    if not args:
        return _error("Please specify a branch to checkout.")
    git.checkout(args[0])
    return _ok(f"Switched to branch '{args[0]}'")


def _git_log(git: GitCollaborator, args: list[str]) -> CommandResult:
    depth = 10
    if args:
        token = args[1] if args[0] == "-n" and len(args) > 1 else args[0].lstrip("-")
        try:
            depth = int(token)
        except ValueError:
            return _error(f"fatal: invalid log depth: '{token}'")
    entries = git.log(depth)
    return _ok(
        "\n".join(
            f"commit {entry.oid}\n"
            f"Author: {entry.author}\n"
            f"Date:   {entry.timestamp.astimezone().strftime('%a %b %d %H:%M:%S %Y')}\n\n"
            f"    {entry.message}\n"
            for entry in entries
        )
    )


def _git_push(git: GitCollaborator, args: list[str]) -> CommandResult:
    return _ok(git.push())


def _git_pull(git: GitCollaborator, args: list[str]) -> CommandResult:
    return _ok(git.pull())


GIT_HANDLERS: dict[str, Callable[[GitCollaborator, list[str]], CommandResult]] = {
    "init": _git_init,
    "status": _git_status,
    "add": _git_add,
    "reset": _git_reset,
    "commit": _git_commit,
    "branch": _git_branch,
    "checkout": _git_checkout,
    "log": _git_log,
    "push": _git_push,
    "pull": _git_pull,
}


def run_git(git: GitCollaborator, subcommand: str, args: list[str]) -> CommandResult:
    """Run one git subcommand, rendering collaborator rejections as ``fatal:``."""
    try:
        return GIT_HANDLERS[subcommand](git, args)
    except GitError as e:
        return _error(f"fatal: {e}")


def _git(ctx: CommandContext, args: list[str]) -> CommandResult:
    if ctx.git is None:
        return _error(GIT_UNAVAILABLE)
    if not args:
        return _error(
            f"Usage: git <command> [args]\nAvailable: {', '.join(GIT_SUBCOMMANDS)}"
        )
    subcommand = args[0].lower()
    if subcommand not in GIT_HANDLERS:
        return _error(f"git: '{args[0]}' is not a git command. See 'git help'.")

    git = ctx.git
    rest = args[1:]
    ctx.defer(lambda: run_git(git, subcommand, rest))
    return _ok()


COMMAND_HANDLERS: dict[BuiltinCommand, Callable[[CommandContext, list[str]], CommandResult]] = {
    BuiltinCommand.HELP: _help,
    BuiltinCommand.LS: _ls,
    BuiltinCommand.CD: _cd,
    BuiltinCommand.PWD: _pwd,
    BuiltinCommand.CAT: _cat,
    BuiltinCommand.MKDIR: _mkdir,
    BuiltinCommand.TOUCH: _touch,
    BuiltinCommand.RM: _rm,
    BuiltinCommand.RMDIR: _rmdir,
    BuiltinCommand.CP: _cp,
    BuiltinCommand.MV: _mv,
    BuiltinCommand.CLEAR: _clear,
    BuiltinCommand.ECHO: _echo,
    BuiltinCommand.WHOAMI: _whoami,
    BuiltinCommand.DATE: _date,
    BuiltinCommand.FIND: _find,
    BuiltinCommand.GREP: _grep,
    BuiltinCommand.HEAD: _head,
    BuiltinCommand.TAIL: _tail,
    BuiltinCommand.WC: _wc,
    BuiltinCommand.PS: _ps,
    BuiltinCommand.DF: _df,
    BuiltinCommand.DU: _du,
    BuiltinCommand.HISTORY: _history,
    BuiltinCommand.ENV: _env,
    BuiltinCommand.SHELL: _shell,
    BuiltinCommand.AI: _ai,
    BuiltinCommand.GIT: _git,
}

_unhandled = [c.value for c in BuiltinCommand if c not in COMMAND_HANDLERS]
_undescribed = [c.value for c in BuiltinCommand if c not in COMMAND_DESCRIPTIONS]
if _unhandled or _undescribed:
    raise RuntimeError(
        f"Built-in commands missing a handler {_unhandled} or a description {_undescribed}"
    )
