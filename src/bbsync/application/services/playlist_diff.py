"""Set diff between the remote index and the local snapshot."""

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass
class SetDiff:
    """Result of diff_sets(). Both sides keep the insertion order of their input."""

    added: dict[str, None] = field(default_factory=dict)
    removed: dict[str, None] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


def diff_sets(remote: Iterable[str], local: Iterable[str]) -> SetDiff:
    """Compute added = remote - local and removed = local - remote.

    Ordered dicts stand in for sets so "added" stays in remote order; the page
    walk and the logs read more naturally that way.
    """
    remote_ids = dict.fromkeys(remote)
    local_ids = dict.fromkeys(local)
    return SetDiff(
        added={item: None for item in remote_ids if item not in local_ids},
        removed={item: None for item in local_ids if item not in remote_ids},
    )


def full_add(remote: Iterable[str]) -> SetDiff:
    """Diff used when there is no local snapshot yet: add everything, remove nothing."""
    return SetDiff(added=dict.fromkeys(remote))
