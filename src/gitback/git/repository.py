"""Local git mirrors driven through the git CLI."""

import os
import subprocess
from enum import Enum
from pathlib import Path

import structlog

from gitback.core.exceptions import GitCommandError
from gitback.git.urls import redact

logger = structlog.get_logger(__name__)

# Never block on a credential prompt; fail instead.
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0", "LC_ALL": "C"}

ORIGIN = "origin"


def run_git(*args: str, cwd: Path | None = None) -> str:
    """Run a git command and return stdout.

    Raises:
        GitCommandError: git is missing or exited non-zero. The message
            carries git's stderr with credentials masked.
    """
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            env={**os.environ, **_GIT_ENV},
        )
    except FileNotFoundError as e:
        raise GitCommandError("git executable not found") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise GitCommandError(
            redact(f"git {args[0]} failed: {stderr or f'exit status {e.returncode}'}"),
            details={"args": [redact(arg) for arg in args], "returncode": e.returncode},
        ) from e
    return result.stdout.strip()


class PullResult(str, Enum):
    """Outcome of a successful pull."""

    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"


class GitRepository:
    """A working copy on disk.

    Uses subprocess + git CLI directly (no gitpython dependency).
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def __repr__(self) -> str:
        return f"GitRepository({str(self._path)!r})"

    @property
    def path(self) -> Path:
        return self._path

    def _run_git(self, *args: str) -> str:
        return run_git(*args, cwd=self._path)

    def _try_git(self, *args: str) -> str | None:
        """Run a query that legitimately fails when the answer is "none"."""
        try:
            output = self._run_git(*args)
        except GitCommandError:
            return None
        return output or None

    @classmethod
    def open(cls, path: Path | str) -> "GitRepository":
        """Open the working copy rooted at ``path``.

        ``path`` itself must hold the ``.git`` entry, so a plain directory
        nested inside another working copy is not mistaken for one.
        """
        repo_path = Path(path)
        if not (repo_path / ".git").exists():
            raise GitCommandError(
                f"not a git repository: {repo_path}", details={"path": str(repo_path)}
            )
        repo = cls(repo_path)
        repo._run_git("rev-parse", "--git-dir")
        return repo

    @classmethod
    def clone(cls, url: str, path: Path | str) -> "GitRepository":
        """Clone ``url`` into ``path``, creating parent directories."""
        repo_path = Path(path)
        repo_path.parent.mkdir(parents=True, exist_ok=True)
        run_git("clone", "--quiet", "--", url, str(repo_path))
        logger.debug("Cloned repository", path=str(repo_path))
        return cls(repo_path)

    def get_current_commit(self) -> str | None:
        """Get the HEAD commit hash, or None for an unborn branch."""
        return self._try_git("rev-parse", "--verify", "--quiet", "HEAD")

    def get_current_branch(self) -> str | None:
        return self._try_git("symbolic-ref", "--quiet", "--short", "HEAD")

    def fetch(self) -> None:
        """Fetch the tracked remote, allowing non-fast-forward ref updates."""
        self._run_git("fetch", "--force", "--quiet")

    def _upstream_commit(self) -> str | None:
        return self._try_git("rev-parse", "--verify", "--quiet", "@{upstream}")

    def _has_remote_refs(self) -> bool:
        return self._try_git("for-each-ref", "--count=1", "refs/remotes") is not None

    def _is_ancestor(self, commit: str, descendant: str) -> bool:
        try:
            self._run_git("merge-base", "--is-ancestor", commit, descendant)
        except GitCommandError:
            return False
        return True

    def pull(self) -> PullResult:
        """Fetch, then fast-forward the current branch to its upstream.

        Raises:
            GitCommandError: the fetch failed, there is no upstream to merge,
                or the branch cannot be fast-forwarded (local divergence or
                a dirty worktree in the way).
        """
        self.fetch()

        upstream = self._upstream_commit()
        if upstream is None:
            if not self._has_remote_refs():
                # remote is still empty
                return PullResult.UP_TO_DATE
            raise GitCommandError(
                f"no upstream configured for {self.get_current_branch() or 'HEAD'}",
                details={"path": str(self._path)},
            )

        head = self.get_current_commit()
        if head == upstream or (head is not None and self._is_ancestor(upstream, head)):
            return PullResult.UP_TO_DATE

        self._run_git("merge", "--ff-only", "--quiet", "@{upstream}")
        return PullResult.UPDATED

    def get_remote_url(self, name: str = ORIGIN) -> str | None:
        """Get the first URL of remote ``name``, if it exists."""
        return self._try_git("config", "--get", f"remote.{name}.url")

    def list_remotes(self) -> list[str]:
        output = self._run_git("remote")
        return output.splitlines() if output else []

    def set_remote(self, name: str, url: str) -> None:
        """Create or overwrite remote ``name`` with a single URL.

        Branch tracking configuration is left alone.
        """
        self._run_git("config", "--replace-all", f"remote.{name}.url", url)
        self._run_git(
            "config",
            "--replace-all",
            f"remote.{name}.fetch",
            f"+refs/heads/*:refs/remotes/{name}/*",
        )


class GitClient:
    """Entry point for clone/open used by the services.

    Exists so callers can substitute their own implementation.
    """

    def clone(self, url: str, path: Path | str) -> GitRepository:
        return GitRepository.clone(url, path)

    def open(self, path: Path | str) -> GitRepository:
        return GitRepository.open(path)
