"""Policy catalog of command categories.

Static table mapping each category to the commands it enables and the
argument tokens those commands accept.

An empty allowed-argument tuple means the command is not argument-checked
at all. It never means "no arguments allowed".
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandPolicy:
    """Allowed invocation shape for one command.

    Attributes:
        name: Command name as passed to execute.
        allowed_arguments: Permitted argument tokens (empty = unrestricted).
        check_all_arguments: Check every argument, not just flags. Needed for
            subcommand-style tools whose verbs have no leading dash.
        requires_consent: First use of each invocation needs consent when the
            active level requires consent.
    """

    name: str
    allowed_arguments: tuple[str, ...] = ()
    check_all_arguments: bool = False
    requires_consent: bool = False

    def merged_with(self, other: "CommandPolicy") -> "CommandPolicy":
        """Union of two policies for the same command."""
        if not self.allowed_arguments or not other.allowed_arguments:
            allowed: tuple[str, ...] = ()
        else:
            allowed = tuple(dict.fromkeys(self.allowed_arguments + other.allowed_arguments))
        return CommandPolicy(
            name=self.name,
            allowed_arguments=allowed,
            check_all_arguments=self.check_all_arguments or other.check_all_arguments,
            requires_consent=self.requires_consent or other.requires_consent,
        )


def _policies(*policies: CommandPolicy) -> dict[str, CommandPolicy]:
    return {p.name: p for p in policies}


_PACKAGE_MANAGER_VERBS = (
    "install", "run", "test", "build", "start", "lint", "audit",
    "list", "outdated", "update", "--version",
)

_DOCKER_COMPOSE_VERBS = (
    "up", "down", "create", "rm", "kill", "pause", "unpause",
    "-d", "--detach", "--remove-orphans", "--no-color", "--quiet-pull", "--force-recreate",
)

# Order matters: category_of reports the first category listing a command.
COMMAND_CATEGORIES: dict[str, dict[str, CommandPolicy]] = {
    "FILESYSTEM": _policies(
        CommandPolicy("grep", (
            "-r", "-i", "-n", "--include", "--exclude", "-l", "-c",
            "-v", "-E", "-F", "-o", "-A", "-B", "-C",
        )),
        CommandPolicy("find", ("-name", "-type", "-maxdepth", "-mtime", "-size", "-newer")),
        CommandPolicy("ls", ("-la", "-lh", "-R", "-t", "-S", "-1")),
        CommandPolicy("cat", ("-n",)),
        CommandPolicy("head", ("-n",)),
        CommandPolicy("tail", ("-n", "-f")),
        CommandPolicy("wc", ("-l", "-w", "-c")),
        CommandPolicy("sort", ("-r", "-n", "-k")),
        CommandPolicy("uniq", ("-c",)),
    ),
    "UTILITIES": _policies(
        CommandPolicy("echo"),
        CommandPolicy("pwd"),
        CommandPolicy("which"),
        CommandPolicy("whoami"),
        CommandPolicy("date"),
        CommandPolicy("du", ("-sh", "-h")),
        CommandPolicy("df", ("-h",)),
    ),
    "PACKAGE_MANAGERS": _policies(
        CommandPolicy("npm", _PACKAGE_MANAGER_VERBS, requires_consent=True),
        CommandPolicy("bun", _PACKAGE_MANAGER_VERBS, requires_consent=True),
        CommandPolicy(
            "yarn",
            tuple("upgrade" if v == "update" else v for v in _PACKAGE_MANAGER_VERBS),
            requires_consent=True,
        ),
        CommandPolicy("pnpm", _PACKAGE_MANAGER_VERBS, requires_consent=True),
        CommandPolicy(
            "deno",
            ("run", "test", "lint", "fmt", "cache", "info", "--version"),
            requires_consent=True,
        ),
    ),
    "RUNTIMES": _policies(
        CommandPolicy("node", ("--version", "-v", "-e", "-p")),
        CommandPolicy("bun", ("--version", "-v", "-e", "-p")),
        CommandPolicy("python", ("--version", "-V", "-c")),
        CommandPolicy("python3", ("--version", "-V", "-c")),
    ),
    "TESTING": _policies(
        CommandPolicy("jest", ("--version", "--config", "--passWithNoTests")),
        CommandPolicy("vitest", ("--version", "--config", "--run")),
        CommandPolicy("mocha", ("--version", "--config")),
        CommandPolicy("tap", ("--version",)),
        CommandPolicy("cypress", ("--version",)),
        CommandPolicy("playwright", ("--version",)),
    ),
    "LINTING": _policies(
        CommandPolicy("eslint", ("--version", "--fix", "--config", "--ext")),
        CommandPolicy("prettier", ("--version", "--write", "--check", "--config")),
        CommandPolicy("tsc", ("--version", "--noEmit", "--project")),
        CommandPolicy("ruff", ("--version", "check", "format")),
        CommandPolicy("black", ("--version", "--check")),
        CommandPolicy("flake8", ("--version",)),
    ),
    "BUILD_TOOLS": _policies(
        CommandPolicy("webpack", ("--version", "--config")),
        CommandPolicy("vite", ("--version", "build", "dev")),
        CommandPolicy("rollup", ("--version", "--config")),
        CommandPolicy("esbuild", ("--version", "--bundle")),
    ),
    "GIT": _policies(
        CommandPolicy(
            "git",
            ("status", "log", "diff", "branch", "show", "--version"),
            check_all_arguments=True,
        ),
    ),
    "DOCKER": _policies(
        CommandPolicy(
            "docker",
            (
                "--version", "ps", "images", "build", "run", "stop", "start", "restart",
                "logs", "exec", "pull", "push",
                "--tail", "-f", "--follow", "--since", "--until", "--timestamps",
                "-t", "-a", "--all", "-q", "--quiet",
                # Compose v2 subcommand
                "compose",
            ) + _DOCKER_COMPOSE_VERBS,
            check_all_arguments=True,
        ),
        CommandPolicy(
            "docker-compose",
            (
                "--version", "build", "ps", "logs", "exec", "restart", "stop", "start",
                "--tail", "-f", "--follow", "pull",
            ) + _DOCKER_COMPOSE_VERBS,
            check_all_arguments=True,
        ),
        CommandPolicy("docker-machine", ("--version", "ls", "status", "start", "stop", "restart")),
    ),
    "RUST": _policies(
        CommandPolicy("rustc", ("--version", "-V", "--print")),
        CommandPolicy("rustup", ("--version", "show", "update", "toolchain", "component", "target")),
        CommandPolicy("rustfmt", ("--version", "--check")),
        CommandPolicy("clippy", ("--version",)),
    ),
    "CARGO": _policies(
        CommandPolicy(
            "cargo",
            (
                "--version", "-V", "build", "check", "test", "run", "clean", "doc", "new", "init",
                "add", "remove", "search", "publish", "install", "uninstall", "bench", "update",
                "fetch", "package", "generate-lockfile", "locate-project", "metadata", "tree",
                "verify-project", "version", "yank", "owner", "login", "logout",
                "fix", "fmt", "clippy", "audit", "outdated",
                "--release", "--debug", "--verbose", "--quiet", "--features", "--all-features",
                "--no-default-features", "--target", "--lib", "--bin", "--example", "--test",
                "--bench", "--all", "--workspace", "--package", "--exclude", "--manifest-path",
                "--frozen", "--locked", "--offline", "--config",
            ),
            check_all_arguments=True,
        ),
    ),
}

LEARNED_CATEGORY = "LEARNED"
UNKNOWN_CATEGORY = "UNKNOWN"


class PolicyCatalog:
    """Lookup interface over a category table.

    Example:
        catalog = PolicyCatalog()
        active = catalog.active_policies({"FILESYSTEM", "GIT"})
        active["git"].check_all_arguments  # True
    """

    def __init__(self, categories: dict[str, dict[str, CommandPolicy]] | None = None):
        self._categories = categories if categories is not None else COMMAND_CATEGORIES

    def category_names(self) -> list[str]:
        """All category names in catalog order."""
        return list(self._categories)

    def active_policies(
        self,
        categories: frozenset[str] | set[str] | None,
    ) -> dict[str, CommandPolicy]:
        """Merge the selected categories into one command table.

        Args:
            categories: Category names to enable, or None for all of them.

        Returns:
            Mapping of command name to its merged policy.
        """
        merged: dict[str, CommandPolicy] = {}
        for name, policies in self._categories.items():
            if categories is not None and name not in categories:
                continue
            for command, policy in policies.items():
                existing = merged.get(command)
                merged[command] = policy if existing is None else existing.merged_with(policy)
        return merged

    def category_of(self, command: str, learned: bool = False) -> str:
        """Report the first category listing a command.

        Falls back to LEARNED or UNKNOWN for commands the catalog lacks.
        """
        for name, policies in self._categories.items():
            if command in policies:
                return name
        return LEARNED_CATEGORY if learned else UNKNOWN_CATEGORY
