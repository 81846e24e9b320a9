"""Git operations — clone and refresh the template cache, query ignore rules."""

from __future__ import annotations

from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

# git check-ignore is invoked on batches of paths to keep argv short.
CHECK_IGNORE_CHUNK = 200


def clone_template(url: str, destination: Path, branch: str) -> str:
    """Shallow-clone *branch* of *url* into *destination*. Returns HEAD sha."""
    repo = Repo.clone_from(url, destination, depth=1, branch=branch)
    return repo.head.commit.hexsha


def fetch_and_reset(repo_path: Path, branch: str) -> str:
    """Fetch *branch* from origin and hard-reset the work tree to it.

    Returns the new HEAD sha.
    """
    repo = Repo(repo_path)
    repo.git.fetch("origin", branch, "--depth", "1")
    repo.git.reset("--hard", f"origin/{branch}")
    return repo.head.commit.hexsha


def is_git_checkout(path: Path) -> bool:
    """True when *path* is the top of a git work tree (has its own ``.git``)."""
    return (path / ".git").exists()


def find_ignored_paths(root: Path, relative_paths: list[str]) -> set[str]:
    """Return the subset of *relative_paths* ignored by the repo at *root*.

    Paths are checked against ignore rules only (``--no-index``), so tracked
    files that match a pattern are reported too. If git fails for a reason
    other than "nothing ignored", the paths collected so far are returned.
    """
    ignored: set[str] = set()
    if not relative_paths or not is_git_checkout(root):
        return ignored

    try:
        repo = Repo(root)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return ignored

    for start in range(0, len(relative_paths), CHECK_IGNORE_CHUNK):
        chunk = relative_paths[start : start + CHECK_IGNORE_CHUNK]
        try:
            output = repo.git.check_ignore("--no-index", "--", *chunk)
        except GitCommandError as exc:
            if exc.status == 1:  # none of the paths in this chunk are ignored
                continue
            return ignored

        for line in output.splitlines():
            line = line.strip().replace("\\", "/")
            if line:
                ignored.add(line)

    return ignored
