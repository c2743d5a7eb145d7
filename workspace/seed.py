"""Demo workspace populated into a fresh in-memory VFS."""

from typing import TYPE_CHECKING, Any

from workspace.node import NodeKind, NodeUpdate

if TYPE_CHECKING:
    from workspace.vfs import VirtualFileSystem


README = (
    "# Welcome to HENU\n\n"
    "This is your home directory.\n\n"
    "## Available Commands\n"
    "- help: Show all commands\n"
    "- ls: List files\n"
    "- cd: Change directory\n"
    "- mkdir: Create directory\n"
    "- touch: Create file\n"
    "- rm: Remove file\n"
    "- cat: View file\n"
    "- ai: AI tools"
)

SCRIPT = (
    'console.log("Hello HENU!");\n\n'
    "function greet() {\n"
    '  return "Welcome to the terminal!";\n'
    "}\n\n"
    "greet();"
)

CONFIG = '{\n  "theme": "dark",\n  "aiEnabled": true,\n  "terminalType": "bash"\n}'


# (name, kind, content, metadata, children)
DEMO_TREE: list[tuple[str, NodeKind, str, dict[str, Any], list]] = [
    ("home", NodeKind.DIRECTORY, "", {}, [
        ("user", NodeKind.DIRECTORY, "", {}, [
            ("Documents", NodeKind.DIRECTORY, "", {"tags": ["docs", "work"]}, []),
            ("Downloads", NodeKind.DIRECTORY, "", {"tags": ["downloads"]}, []),
            ("Projects", NodeKind.DIRECTORY, "",
             {"tags": ["code", "projects"], "favorite": True}, []),
            ("README.md", NodeKind.FILE, README,
             {"tags": ["documentation", "readme"], "favorite": True}, []),
            (".config", NodeKind.DIRECTORY, "", {"tags": ["config", "hidden"]}, []),
            ("script.js", NodeKind.FILE, SCRIPT, {"tags": ["javascript", "code"]}, []),
        ]),
    ]),
    ("etc", NodeKind.DIRECTORY, "", {}, [
        ("config.json", NodeKind.FILE, CONFIG, {"tags": ["configuration", "system"]}, []),
    ]),
    ("var", NodeKind.DIRECTORY, "", {"tags": ["system", "logs"]}, []),
    ("tmp", NodeKind.DIRECTORY, "", {"tags": ["temporary", "system"]}, []),
    ("bin", NodeKind.DIRECTORY, "", {"tags": ["binaries", "system"]}, []),
]


def seed_demo_tree(vfs: "VirtualFileSystem", home: str = "/home/user") -> None:
    """Populate ``vfs`` with the demo workspace.

    The configured home directory is created as well when it is not part of
    the demo tree, so ``cd ~`` always lands somewhere.

    Args:
        vfs: An empty, unbound VirtualFileSystem.
        home: Absolute virtual home path.
    """
    _populate(vfs, vfs.root_id, DEMO_TREE)
    vfs.ensure_directories(home)


def _populate(vfs: "VirtualFileSystem", parent_id: str, entries: list) -> None:
    for name, kind, content, metadata, children in entries:
        result = vfs.create(kind, name, parent_id, content=content)
        if not result.ok:
            raise RuntimeError(f"Failed to seed '{name}': {result.message}")
        node_id = result.node.id
        if metadata:
            vfs.update(node_id, NodeUpdate(**metadata))
        if children:
            _populate(vfs, node_id, children)
