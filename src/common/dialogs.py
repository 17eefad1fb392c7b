"""
Common dialog utilities for the Companion Store desktop window.

Provides standardized PyQt6 message boxes for consistent UX.
"""

from __future__ import annotations

from typing import Optional

from PyQt6.QtWidgets import QMessageBox, QWidget


def show_error(
    parent: Optional[QWidget],
    title: str,
    message: str,
    details: Optional[str] = None,
) -> None:
    """
    Show standardized error dialog.

    Args:
        parent: Parent window
        title: Error title/heading
        message: Error message body
        details: Optional technical details (shown behind "Show Details")
    """
    box = QMessageBox(parent)
    box.setIcon(QMessageBox.Icon.Critical)
    box.setWindowTitle(title)
    box.setText(title)
    box.setInformativeText(message)
    if details:
        box.setDetailedText(details)
    box.setStandardButtons(QMessageBox.StandardButton.Ok)
    box.exec()


def show_message(
    parent: Optional[QWidget],
    title: str,
    message: str,
) -> None:
    """Show a blocking informational dialog with a single OK button."""
    box = QMessageBox(parent)
    box.setIcon(QMessageBox.Icon.Information)
    box.setWindowTitle(title)
    box.setText(title)
    box.setInformativeText(message)
    box.setStandardButtons(QMessageBox.StandardButton.Ok)
    box.exec()


def show_confirmation(
    parent: Optional[QWidget],
    title: str,
    message: str,
    confirm_label: str = "Confirm",
    destructive: bool = False,
) -> bool:
    """
    Show confirmation dialog.

    Args:
        parent: Parent window
        title: Dialog title/heading
        message: Dialog message body
        confirm_label: Label for confirm button
        destructive: If True, the dialog shows a warning icon

    Returns:
        True if the user confirmed.
    """
    box = QMessageBox(parent)
    box.setIcon(QMessageBox.Icon.Warning if destructive else QMessageBox.Icon.Question)
    box.setWindowTitle(title)
    box.setText(message)
    confirm = box.addButton(confirm_label, QMessageBox.ButtonRole.AcceptRole)
    cancel = box.addButton(QMessageBox.StandardButton.Cancel)
    box.setDefaultButton(cancel)
    box.exec()
    return box.clickedButton() is confirm
