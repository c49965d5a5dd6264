"""
Command-line interface for the secret store.

This module wires settings, cipher, version control and the external
programs into a Store and provides the user-facing commands:
- ls / search / cat / paste
- add / import / import-r / rm
- export / pathexport / open / edit / shred
- status / commit / reset / sync / fullcommit
- shell / help
"""

from __future__ import annotations

import argparse
import logging
import re
import shlex
import sys
from typing import Callable, Dict, List, NoReturn, Optional

from .cipher import CipherContext
from .config import ENV_PIN, TOOL_VERSION
from .errors import GeheimError, SetupError
from .externals import Clipboard, Editor, Opener, Picker, extract_credentials
from .records import IndexRecord
from .settings import Settings
from .store import Store
from .vcs import Git

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BINARY = 2
EXIT_FATAL = 3
EXIT_INTERRUPTED = 130


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    print(colored(f"✓ {msg}", Colors.GREEN))


def print_warning(msg: str) -> None:
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW))


def print_info(msg: str) -> None:
    print(colored(f"ℹ {msg}", Colors.CYAN))


def fatal(msg: str) -> NoReturn:
    print_error(msg)
    sys.exit(EXIT_FATAL)


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, settings_path: Optional[str], quiet: bool):
        self.settings_path = settings_path
        self.quiet = quiet
        self.last_result: Optional[str] = None
        self.interactive = False

        # Lazy-loaded
        self._settings: Optional[Settings] = None
        self._store: Optional[Store] = None
        self._git: Optional[Git] = None

    @property
    def settings(self) -> Settings:
        """Load settings lazily."""
        if self._settings is None:
            self._settings = Settings.load(self.settings_path)
        return self._settings

    @property
    def git(self) -> Git:
        if self._git is None:
            self._git = Git(self.settings.data_dir, self.settings.sync_remotes)
        return self._git

    @property
    def store(self) -> Store:
        """
        Build the store lazily.

        The cipher is only set up on the first encrypt/decrypt, so
        commands like ``help`` or ``status`` never ask for the PIN.
        """
        if self._store is None:
            settings = self.settings
            self._store = Store(
                settings.data_dir,
                settings.export_dir,
                cipher_factory=lambda: CipherContext.initialize(settings.key_file),
                vcs=self.git,
                plaintext_extensions=settings.plaintext_extensions,
            )
        return self._store

    @property
    def editor(self) -> Editor:
        return Editor(self.settings.edit_cmd)

    @property
    def opener(self) -> Opener:
        return Opener(self.settings.open_cmd)

    @property
    def clipboard(self) -> Clipboard:
        return Clipboard(self.settings.clipboard_cmd)

    @property
    def picker(self) -> Picker:
        return Picker(self.settings.picker_cmd)

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def pick(ctx: CLIContext) -> Optional[str]:
    """Run the fuzzy finder over all descriptions; return the chosen one."""
    records = ctx.store.search()
    selection = ctx.picker.choose(str(record) for record in records)
    if selection is None:
        return None
    description = selection.split(";", 1)[0]
    ctx.last_result = description
    return description


def exact_pattern(description: str) -> str:
    """Regex matching exactly one description, taken literally."""
    return "^" + re.escape(description) + "$"


def _term(ctx: CLIContext, args: argparse.Namespace) -> Optional[str]:
    """
    The search pattern for a command.

    An explicit term is a regex. Otherwise the last result, or a fresh
    pick, names one description and is matched literally.
    """
    term = getattr(args, "term", None)
    if term:
        return term

    description = ctx.last_result or pick(ctx)
    if description is None:
        return None
    return exact_pattern(description)


def _matches(ctx: CLIContext, args: argparse.Namespace) -> List[IndexRecord]:
    term = _term(ctx, args)
    if term is None:
        return []
    records = ctx.store.search(term)
    for record in records:
        print(record, end="")
    if records:
        ctx.last_result = records[-1].description
    return records


def cmd_ls(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = ctx.store.search()
    for record in records:
        print(record, end="")
    return EXIT_OK if records else EXIT_FAILURE


def cmd_search(ctx: CLIContext, args: argparse.Namespace) -> int:
    return EXIT_OK if _matches(ctx, args) else EXIT_FAILURE


def cmd_cat(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = _matches(ctx, args)
    if not records:
        return EXIT_FAILURE

    status = EXIT_OK
    for record in records:
        if record.binary:
            print_warning("Not displaying binary data!")
            status = EXIT_BINARY
            continue
        print(record.get_data(ctx.store.cipher), end="")
    return status


def cmd_paste(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = _matches(ctx, args)
    if not records:
        return EXIT_FAILURE

    status = EXIT_OK
    for record in records:
        if record.binary:
            print_warning("Not pasting binary data!")
            status = EXIT_BINARY
            continue

        user, password, censored = extract_credentials(record.get_data(ctx.store.cipher).text())
        if password is None:
            print_warning(f"No user:password found in {record.description}")
            status = EXIT_FAILURE
            continue

        ctx.clipboard.write(password.encode("utf-8"))
        ctx.log(censored)
        print_success(f"Pasted password for user {user} to the clipboard")
    return status


def cmd_export(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = _matches(ctx, args)
    for record in records:
        data = ctx.store.export(record, flat=not args.keep_path)
        print_info(f"Exported to {data.exported_path}")
    return EXIT_OK if records else EXIT_FAILURE


def cmd_open(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = _matches(ctx, args)
    for record in records:
        ctx.store.open(record, ctx.opener)
    return EXIT_OK if records else EXIT_FAILURE


def cmd_edit(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = _matches(ctx, args)
    for record in records:
        ctx.store.edit(record, ctx.editor)
        print_success(f"Updated {record.description}")
    return EXIT_OK if records else EXIT_FAILURE


def cmd_add(ctx: CLIContext, args: argparse.Namespace) -> int:
    description = args.description or ctx.last_result
    if not description:
        print_error("No description given")
        return EXIT_FAILURE

    print("> Data: ", end="", flush=True)
    payload = sys.stdin.readline().rstrip("\n")
    ctx.store.add(description, payload.encode("utf-8"), force=args.force)
    print_success(f"Added {description}")
    return EXIT_OK


def cmd_import(ctx: CLIContext, args: argparse.Namespace) -> int:
    record = ctx.store.import_file(
        args.source,
        dest_dir=args.dest,
        force=args.force,
        shred_source=args.shred,
    )
    print_success(f"Imported {args.source} -> {record.description}")
    return EXIT_OK


def cmd_import_recursive(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = ctx.store.import_recursive(args.directory, dest_dir=args.dest, force=args.force)
    print_success(f"Imported {len(records)} file(s)")
    return EXIT_OK


def cmd_rm(ctx: CLIContext, args: argparse.Namespace) -> int:
    records = ctx.store.search(args.term)
    if not records:
        return EXIT_FAILURE

    for record in records:
        while True:
            print(record, end="")
            answer = "y" if args.yes else input("< You really want to delete this? (y/n): ").strip()
            if answer == "y":
                ctx.store.remove(record)
                print_success(f"Deleted {record.description}")
                break
            if answer == "n":
                break
    return EXIT_OK


def cmd_shred(ctx: CLIContext, args: argparse.Namespace) -> int:
    count = ctx.store.shred_all_exported()
    print_success(f"Shredded {count} exported file(s)")
    return EXIT_OK


def cmd_status(ctx: CLIContext, args: argparse.Namespace) -> int:
    ctx.log(ctx.git.status())
    return EXIT_OK


def cmd_commit(ctx: CLIContext, args: argparse.Namespace) -> int:
    ctx.log(ctx.git.commit())
    return EXIT_OK


def cmd_reset(ctx: CLIContext, args: argparse.Namespace) -> int:
    ctx.log(ctx.git.reset())
    return EXIT_OK


def cmd_sync(ctx: CLIContext, args: argparse.Namespace) -> int:
    ctx.log(ctx.git.sync())
    return EXIT_OK


def cmd_fullcommit(ctx: CLIContext, args: argparse.Namespace) -> int:
    ctx.log(ctx.git.sync())
    ctx.log(ctx.git.commit())
    ctx.log(ctx.git.sync())
    return EXIT_OK


def cmd_pick(ctx: CLIContext, args: argparse.Namespace) -> int:
    description = pick(ctx)
    if description is None:
        return EXIT_FAILURE
    ctx.log(description)
    return EXIT_OK


def cmd_last(ctx: CLIContext, args: argparse.Namespace) -> int:
    if ctx.last_result is None:
        return EXIT_FAILURE
    ctx.log(ctx.last_result)
    return EXIT_OK


def cmd_shell(ctx: CLIContext, args: argparse.Namespace) -> int:
    """Read commands from stdin until ``exit`` or end of input."""
    parser = build_parser()
    ctx.interactive = True
    status = EXIT_OK

    while ctx.interactive:
        try:
            line = input("% ")
        except EOFError:
            break

        argv = shlex.split(line)
        if not argv:
            status = cmd_pick(ctx, args)
            continue
        if argv[0] == "exit":
            ctx.log("Good bye")
            break
        if argv[0] not in COMMANDS:
            argv = ["search", *argv]

        try:
            sub_args = parser.parse_args(argv)
        except SystemExit:
            continue
        status = run_command(ctx, sub_args)

    return status


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    help_text = f"""
{colored('geheim', Colors.BOLD)} — encrypted, git-versioned secret store

{colored('USAGE:', Colors.CYAN)}
  geheim [options] <command> [args...]
  geheim [options] SEARCHTERM

{colored('COMMANDS:', Colors.CYAN)}
  ls                              List all secrets
  search TERM                     List secrets whose description matches TERM (regex)
  cat TERM                        Print matching text secrets
  paste TERM                      Copy the password of a user:password secret
  add DESCRIPTION                 Add a secret read from stdin
  import FILE [DEST] [--force]    Import a file
  import-r DIR [DEST]             Import a directory recursively
  export|pathexport TERM          Write plaintext copies to the export directory
  open TERM                       Open a plaintext copy, then shred it
  edit TERM                       Edit in $EDITOR-like command, reimport, shred
  rm TERM                         Delete secrets (asks for confirmation)
  shred                           Shred everything in the export directory
  status|commit|reset|sync|fullcommit
                                  Version control of the store
  pick                            Choose a secret with the fuzzy finder
  shell                           Interactive mode
  help                            Show this help message

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -c, --config PATH         Settings file (default: ~/.config/geheim/config.yml)
  -v, --verbose             Enable debug logging
  -q, --quiet               Suppress non-error output

{colored('ENVIRONMENT:', Colors.CYAN)}
  {ENV_PIN}                PIN (skips the prompt)
  GEHEIM_CONFIG             Settings file
  GEHEIM_DATA_DIR           Store directory (git working tree)
  GEHEIM_EXPORT_DIR         Export directory for plaintext copies
  GEHEIM_KEY_FILE           Key material file

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return EXIT_OK


COMMANDS: Dict[str, Callable[[CLIContext, argparse.Namespace], int]] = {
    "ls": cmd_ls,
    "search": cmd_search,
    "cat": cmd_cat,
    "paste": cmd_paste,
    "export": cmd_export,
    "pathexport": cmd_export,
    "open": cmd_open,
    "edit": cmd_edit,
    "add": cmd_add,
    "import": cmd_import,
    "import-r": cmd_import_recursive,
    "rm": cmd_rm,
    "shred": cmd_shred,
    "status": cmd_status,
    "commit": cmd_commit,
    "reset": cmd_reset,
    "sync": cmd_sync,
    "fullcommit": cmd_fullcommit,
    "pick": cmd_pick,
    "last": cmd_last,
    "shell": cmd_shell,
    "help": cmd_help,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="geheim",
        description="Encrypted, git-versioned secret store",
        add_help=False,
    )

    parser.add_argument("-c", "--config", help="Path to settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress non-error output")
    parser.add_argument("-h", "--help", action="store_true", help="Show help message")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("ls", help="List all secrets")

    for name in ("search", "cat", "paste", "open", "edit"):
        sub = subparsers.add_parser(name)
        sub.add_argument("term", nargs="?", help="Regular expression over descriptions")

    for name in ("export", "pathexport"):
        sub = subparsers.add_parser(name, help="Export plaintext copies")
        sub.add_argument("term", nargs="?", help="Regular expression over descriptions")
        sub.set_defaults(keep_path=name == "pathexport")

    add_parser = subparsers.add_parser("add", help="Add a secret from stdin")
    add_parser.add_argument("description", nargs="?", help="Secret description / path")
    add_parser.add_argument("--force", action="store_true", help="Overwrite an existing secret")

    import_parser = subparsers.add_parser("import", help="Import a file")
    import_parser.add_argument("source", help="File to import")
    import_parser.add_argument("dest", nargs="?", help="Destination directory or path")
    import_parser.add_argument("--force", action="store_true", help="Overwrite an existing secret")
    import_parser.add_argument("--shred", action="store_true", help="Shred the source after import")

    import_r_parser = subparsers.add_parser("import-r", help="Import a directory")
    import_r_parser.add_argument("directory", help="Directory to import")
    import_r_parser.add_argument("dest", nargs="?", help="Destination directory")
    import_r_parser.add_argument("--force", action="store_true", help="Overwrite existing secrets")

    rm_parser = subparsers.add_parser("rm", help="Delete secrets")
    rm_parser.add_argument("term", help="Regular expression over descriptions")
    rm_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    for name in ("shred", "status", "commit", "reset", "sync", "fullcommit", "pick", "last", "shell", "help"):
        subparsers.add_parser(name)

    return parser


def first_positional(argv: List[str]) -> Optional[int]:
    """Index of the first argument that is not a global option or its value."""
    skip = False
    for index, arg in enumerate(argv):
        if skip:
            skip = False
        elif arg in ("-c", "--config"):
            skip = True
        elif not arg.startswith("-"):
            return index
    return None


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="> %(message)s")


def run_command(ctx: CLIContext, args: argparse.Namespace) -> int:
    """Dispatch one parsed command; turn store errors into exit codes."""
    cmd_func = COMMANDS.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return EXIT_FAILURE

    try:
        return cmd_func(ctx, args)
    except SetupError as e:
        fatal(str(e))
    except GeheimError as e:
        print_error(str(e))
        return EXIT_FAILURE


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()

    # A bare search term is shorthand for "search TERM"
    index = first_positional(argv)
    if index is not None and argv[index] not in COMMANDS:
        argv.insert(index, "search")

    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    if args.help:
        return cmd_help(None, args)

    ctx = CLIContext(settings_path=args.config, quiet=args.quiet)

    if not args.command:
        args.command = "shell"

    try:
        return run_command(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
