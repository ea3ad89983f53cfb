"""Sandbox resolution of canonical @mentions against a workspace root."""

import logging
import os

from ...utils.mentions import mention_to_relative_path

logger = logging.getLogger(__name__)

OUTSIDE_ROOT_REASON = "Mention path resolves outside the workspace root."


def is_within_root(root: str, candidate: str) -> bool:
    """Check that candidate is the root itself or a strict descendant of it.

    Both paths must already be absolute and normalized. A plain prefix test
    is not enough: root '/work' must not accept '/work2/x'.

    Args:
        root: Absolute workspace root
        candidate: Absolute candidate path

    Returns:
        True if candidate lies inside root
    """
    if candidate == root:
        return True
    prefix = root if root.endswith(os.sep) else f"{root}{os.sep}"
    return candidate.startswith(prefix)


class WorkspaceSandbox:
    """Resolves canonical mentions to absolute paths inside one workspace root.

    The lexical check in resolve() never touches the file system and is the
    authoritative gate. check_real_path() additionally follows symlinks for
    paths that exist, so a link inside the workspace cannot expose a file
    outside it.
    """

    def __init__(self, workspace_path: str | os.PathLike[str]):
        """Resolve the workspace root once for the whole invocation.

        Both the lexical root and its symlink-resolved form are computed here
        so concurrent checks share them.

        Args:
            workspace_path: Workspace root supplied by the caller
        """
        self.root = os.path.abspath(os.fspath(workspace_path))
        self.real_root = os.path.realpath(self.root)

    def resolve(self, mention: str) -> str | None:
        """Resolve a canonical mention to an absolute path under the root.

        Args:
            mention: Canonical mention ('/src/agent.py')

        Returns:
            Absolute path if inside the workspace, None if it escapes
        """
        relative = mention_to_relative_path(mention)
        # join() lets an absolute remainder ('//etc/passwd') replace the root;
        # the containment check below rejects it
        absolute = os.path.abspath(os.path.join(self.root, relative))

        if not is_within_root(self.root, absolute):
            logger.warning(f"Mention escapes workspace root: {mention} -> {absolute}")
            return None

        logger.debug(f"Mention resolved: {mention} -> {absolute}")
        return absolute

    def check_real_path(self, absolute_path: str) -> bool:
        """Check that an existing path stays inside the root once symlinks are followed."""
        real_path = os.path.realpath(absolute_path)
        if is_within_root(self.real_root, real_path):
            return True

        logger.warning(f"Symlink escapes workspace root: {absolute_path} -> {real_path}")
        return False
