"""Library for computing content tags from the local git repo.

The tag of a build is the git tree hash of the kernel directory, so the tag
only changes when the contents of the directory change. A build from a
working tree with uncommitted changes under the directory gets a `-dirty`
suffix and may not be published.

Example usage:

```python
from pathlib import Path
from kernel_matrix import git_repo

tree_hash = git_repo.compute_tag(Path("kernel"))
print(f"Building images with tag {tree_hash.tag}")
```
"""

from dataclasses import dataclass
from functools import cache
import logging
import os
from pathlib import Path

import git

from .exceptions import RepositoryStateError

__all__ = [
    "TreeHash",
    "compute_tag",
    "head_revision",
    "push_manifest_path",
]

_LOGGER = logging.getLogger(__name__)

HEAD = "HEAD"
DIRTY_SUFFIX = "-dirty"
PUSH_MANIFEST = Path("scripts/push-manifest.sh")


@dataclass(frozen=True)
class TreeHash:
    """Content hash of a directory in the repo."""

    hash: str
    """The git object id of the directory tree."""

    dirty: bool = False
    """True when the working tree differs from HEAD under the directory."""

    @property
    def tag(self) -> str:
        """The content tag used in image references."""
        if self.dirty:
            return f"{self.hash}{DIRTY_SUFFIX}"
        return self.hash


@cache
def git_repo(path: Path | None = None) -> git.repo.Repo:
    """Return the local git repo containing the path."""
    try:
        if path is None:
            return git.repo.Repo(os.getcwd(), search_parent_directories=True)
        return git.repo.Repo(str(path), search_parent_directories=True)
    except git.GitError as err:
        raise RepositoryStateError(
            f"Unable to find git repository for {path}: {err}"
        ) from err


def repo_root(repo: git.repo.Repo) -> Path:
    """Return the local git repo path."""
    return Path(repo.git.rev_parse("--show-toplevel"))


def _relative_path(repo: git.repo.Repo, path: Path) -> str:
    """Return the path relative to the repo root in git pathspec form."""
    root = repo_root(repo).resolve()
    try:
        return path.resolve().relative_to(root).as_posix()
    except ValueError as err:
        raise RepositoryStateError(
            f"Path {path} is not part of the repository at {root}"
        ) from err


def _tree_hash(repo: git.repo.Repo, commit: str, rel_path: str) -> str:
    """Return the object id of the path as recorded in the commit."""
    try:
        tree = str(repo.git.rev_parse("--verify", f"{commit}^{{tree}}"))
    except git.GitCommandError as err:
        raise RepositoryStateError(
            f"Unable to read tree for {rel_path} at {commit}: {err}"
        ) from err
    if rel_path == ".":
        return tree
    # The "<tree>:<path>" form takes the path verbatim, unlike the quoted
    # paths printed by ls-tree.
    try:
        return str(repo.git.rev_parse("--verify", "--quiet", f"{tree}:{rel_path}"))
    except git.GitCommandError as err:
        raise RepositoryStateError(
            f"Path {rel_path} is not tracked at {commit}"
        ) from err


def _is_dirty(repo: git.repo.Repo, rel_path: str) -> bool:
    """Return true if the working tree differs from HEAD under the path."""
    try:
        repo.git.update_index("-q", "--refresh")
        repo.git.diff_index("--quiet", HEAD, "--", rel_path)
    except git.GitCommandError as err:
        if err.status == 1:
            return True
        raise RepositoryStateError(
            f"Unable to compare {rel_path} to {HEAD}: {err}"
        ) from err
    return False


def compute_tag(path: Path, commit: str = HEAD) -> TreeHash:
    """Compute the content hash of the path recorded in the commit.

    Only HEAD can be dirty; a historical ref has no working tree to compare.
    """
    commit = commit.strip() or HEAD
    repo = git_repo(path)
    rel_path = _relative_path(repo, path)
    tree_hash = _tree_hash(repo, commit, rel_path)
    dirty = commit == HEAD and _is_dirty(repo, rel_path)
    result = TreeHash(hash=tree_hash, dirty=dirty)
    _LOGGER.debug("Computed tag %s for %s at %s", result.tag, rel_path, commit)
    return result


def head_revision(path: Path) -> str:
    """Return the full commit sha of HEAD."""
    repo = git_repo(path)
    try:
        return str(repo.head.commit.hexsha)
    except ValueError as err:
        raise RepositoryStateError(f"Unable to resolve {HEAD}: {err}") from err


def push_manifest_path(path: Path) -> Path:
    """Return the default manifest helper script of the repo."""
    return repo_root(git_repo(path)) / PUSH_MANIFEST
