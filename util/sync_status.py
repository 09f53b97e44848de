from typing import List, Tuple


def sync_status_fragments(pending: int, online: bool, in_flight: bool = False) -> List[Tuple[str, str]]:
    """Unified sync label: connectivity marker plus backlog size."""
    entries: List[Tuple[str, str]] = []
    if in_flight:
        entries.append(("class:icon.warn", "Sync ⟳"))

    label = "Online ■" if online else "Offline □"
    if pending:
        label = f"{label} pending={pending}"
        style = "class:icon.warn" if online else "class:text.dim"
    else:
        label = f"{label} synced"
        style = "class:icon.check" if online else "class:text.dim"
    entries.append((style, label))
    return entries


def sync_status_label(pending: int, online: bool, in_flight: bool = False) -> str:
    return " ".join(text for _, text in sync_status_fragments(pending, online, in_flight))


__all__ = ["sync_status_fragments", "sync_status_label"]
