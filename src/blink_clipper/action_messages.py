"""UI-facing copy for the status banner and CLI errors."""

from __future__ import annotations

SIGNED_IN_MESSAGE = "Signed in successfully!"
LOGGED_OUT_MESSAGE = "Logged out"
SAVED_MESSAGE = "Saved to Blink!"
SAVE_FAILED_MESSAGE = "Error saving link."
SAVE_CONFLICT_MESSAGE = "This vault changed while saving. Please try again."
LOAD_VAULTS_FAILED_MESSAGE = "Error loading containers"
NO_VAULTS_MESSAGE = "No containers found"


def _ensure_sentence(text: str) -> str:
    """Return text with terminal sentence punctuation."""
    cleaned = text.strip()
    if not cleaned:
        return ""
    if cleaned.endswith((".", "!", "?")):
        return cleaned
    return f"{cleaned}."


def build_actionable_error(
    action: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable error message."""
    lines = [f"Could not {action.strip()}."]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


def build_next_step_hint(next_step: str) -> str:
    """Build a canonical next-step guidance line."""
    return f"Next step: {_ensure_sentence(next_step)}"


def build_vault_count_label(count: int) -> str:
    """Build the header label above the vault picker."""
    if count == 0:
        return NO_VAULTS_MESSAGE
    return f"{count} container{'s' if count != 1 else ''}"


def build_signed_in_as(email: str) -> str:
    return f"Signed in as {email}"


__all__ = [
    "LOAD_VAULTS_FAILED_MESSAGE",
    "LOGGED_OUT_MESSAGE",
    "NO_VAULTS_MESSAGE",
    "SAVED_MESSAGE",
    "SAVE_CONFLICT_MESSAGE",
    "SAVE_FAILED_MESSAGE",
    "SIGNED_IN_MESSAGE",
    "build_actionable_error",
    "build_next_step_hint",
    "build_signed_in_as",
    "build_vault_count_label",
]
