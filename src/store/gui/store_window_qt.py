#!/usr/bin/env python3
"""
Companion Store - Qt window for the app catalog.

A PyQt6 front end over CatalogState. Catalog operations run on a
background asyncio loop (see loop.py); state notifications and alerts
cross back to the GUI thread as queued Qt signals.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QLineEdit, QScrollArea, QFrame, QCheckBox,
    QStatusBar,
)
from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtGui import QFont

from common.dialogs import show_error, show_message, show_confirmation
from common.exceptions import ConfigError
from common.logging_config import setup_logging
from store.alerts import AlertSink
from store.analytics import LoggingAnalytics
from store.app_catalog import AppRecord
from store.catalog_state import CatalogState, CatalogEntry
from store.config import StoreConfig
from store.preferences import PreferenceStore
from store.remote import HttpAppService
from store.gui.loop import LoopThread

logger = logging.getLogger(__name__)


class CatalogBridge(QObject):
    """Re-emits catalog notifications and alerts as Qt signals."""
    changed = pyqtSignal()
    error = pyqtSignal(str)
    success = pyqtSignal(str)
    dialog = pyqtSignal(str, str)

    def notify(self):
        self.changed.emit()


class QtAlertSink(AlertSink):
    """AlertSink that forwards to a CatalogBridge."""

    def __init__(self, bridge: CatalogBridge):
        self._bridge = bridge

    def show_error(self, message: str) -> None:
        self._bridge.error.emit(message)

    def show_success(self, message: str) -> None:
        self._bridge.success.emit(message)

    def show_blocking_dialog(self, title: str, content: str) -> None:
        self._bridge.dialog.emit(title, content)


class AppRow(QFrame):
    """Row widget displaying one app."""

    def __init__(self, entry: CatalogEntry, index: int, selected: bool, window: "StoreWindow"):
        super().__init__()
        app = entry.record
        self.app = app
        self.index = index

        self.setFrameStyle(QFrame.Shape.StyledPanel | QFrame.Shadow.Raised)
        border = "#0078d4" if selected else "#404040"
        self.setStyleSheet(f"""
            AppRow {{
                background-color: #2d2d2d;
                border: 1px solid {border};
                border-radius: 8px;
                padding: 8px;
            }}
        """)

        layout = QHBoxLayout(self)
        layout.setSpacing(12)

        text = QVBoxLayout()
        name_label = QLabel(app.name or app.id)
        name_label.setFont(QFont("", 12, QFont.Weight.Bold))
        text.addWidget(name_label)

        if app.author:
            author_label = QLabel(app.author)
            author_label.setStyleSheet("color: #888888; font-size: 10px;")
            text.addWidget(author_label)

        description = app.description
        if len(description) > 100:
            description = description[:100] + "..."
        desc_label = QLabel(description)
        desc_label.setWordWrap(True)
        desc_label.setStyleSheet("color: #cccccc; font-size: 11px;")
        text.addWidget(desc_label)

        caps = ", ".join(app.capabilities) or "no capabilities"
        visibility = "Public" if app.is_public else "Private"
        meta_label = QLabel(f"{visibility} · {caps}")
        meta_label.setStyleSheet("color: #888888; font-size: 10px;")
        text.addWidget(meta_label)

        layout.addLayout(text, stretch=1)

        if app.works_with_chat():
            select_btn = QPushButton("Selected" if selected else "Use in chat")
            select_btn.setEnabled(not selected)
            select_btn.clicked.connect(lambda: window.select_app(app))
            layout.addWidget(select_btn)

        if not app.is_public:
            delete_btn = QPushButton("Delete")
            delete_btn.clicked.connect(lambda: window.delete_app(app))
            layout.addWidget(delete_btn)

        if entry.loading:
            toggle_text = "Working..."
        else:
            toggle_text = "Disable" if app.enabled else "Enable"
        self.toggle_btn = QPushButton(toggle_text)
        self.toggle_btn.setEnabled(not entry.loading)
        self.toggle_btn.clicked.connect(lambda: window.toggle_app(app, index))
        layout.addWidget(self.toggle_btn)


class StoreWindow(QMainWindow):
    """Main Companion Store window."""

    def __init__(self, state: CatalogState, bridge: CatalogBridge, runner: LoopThread):
        super().__init__()
        self.setWindowTitle("Companion Store")
        self.setMinimumSize(800, 600)

        self.setStyleSheet("""
            QMainWindow {
                background-color: #1e1e1e;
            }
            QLabel, QCheckBox {
                color: white;
            }
            QLineEdit {
                background-color: #2d2d2d;
                border: 1px solid #404040;
                border-radius: 4px;
                padding: 8px;
                color: white;
            }
            QLineEdit:focus {
                border-color: #0078d4;
            }
        """)

        self._state = state
        self._runner = runner

        self._build_ui()

        bridge.changed.connect(self._render)
        bridge.error.connect(self._on_error)
        bridge.success.connect(self._on_success)
        bridge.dialog.connect(self._on_dialog)

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)

        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # Header bar
        header = QWidget()
        header.setFixedHeight(56)
        header.setStyleSheet("background-color: #2d2d2d;")
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(16, 8, 16, 8)

        title = QLabel("Apps")
        title.setFont(QFont("", 14, QFont.Weight.Bold))
        header_layout.addWidget(title)

        header_layout.addStretch()

        self.chat_box = QCheckBox("Chat")
        self.chat_box.toggled.connect(lambda _: self._runner.call(self._state.toggle_filter_chat))
        header_layout.addWidget(self.chat_box)

        self.memories_box = QCheckBox("Memories")
        self.memories_box.toggled.connect(lambda _: self._runner.call(self._state.toggle_filter_memories))
        header_layout.addWidget(self.memories_box)

        self.external_box = QCheckBox("External")
        self.external_box.toggled.connect(lambda _: self._runner.call(self._state.toggle_filter_external))
        header_layout.addWidget(self.external_box)

        self.search_box = QLineEdit()
        self.search_box.setPlaceholderText("Search apps...")
        self.search_box.setMinimumWidth(250)
        self.search_box.textChanged.connect(
            lambda text: self._runner.call(self._state.update_search_query, text)
        )
        header_layout.addWidget(self.search_box)

        self.refresh_btn = QPushButton("Refresh")
        self.refresh_btn.clicked.connect(lambda: self._runner.submit(self._state.refresh_catalog()))
        header_layout.addWidget(self.refresh_btn)

        main_layout.addWidget(header)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setStyleSheet("QScrollArea { border: none; background-color: #1e1e1e; }")

        self.apps_container = QWidget()
        self.apps_layout = QVBoxLayout(self.apps_container)
        self.apps_layout.setSpacing(8)
        self.apps_layout.setContentsMargins(16, 16, 16, 16)

        scroll.setWidget(self.apps_container)
        main_layout.addWidget(scroll)

        self.status = QStatusBar()
        self.status.setStyleSheet("background-color: #2d2d2d; color: #888888;")
        self.setStatusBar(self.status)

    def _sync_filters(self):
        for box, value in (
            (self.chat_box, self._state.filter_chat),
            (self.memories_box, self._state.filter_memories),
            (self.external_box, self._state.filter_external),
        ):
            box.blockSignals(True)
            box.setChecked(value)
            box.blockSignals(False)

    def _render(self):
        self._sync_filters()

        while self.apps_layout.count():
            item = self.apps_layout.takeAt(0)
            if item.widget():
                item.widget().deleteLater()

        visible = {app.id for app in self._state.filtered_apps}
        selected_id = self._state.selected_app_id
        shown = 0
        for index, entry in enumerate(self._state.entries):
            if entry.record.id not in visible:
                continue
            row = AppRow(entry, index, entry.record.id == selected_id, self)
            self.apps_layout.addWidget(row)
            shown += 1
        self.apps_layout.addStretch()

        self.refresh_btn.setEnabled(not self._state.is_loading)
        if self._state.is_loading:
            self.status.showMessage("Loading apps...")
        else:
            self.status.showMessage(f"{shown} apps")

    def toggle_app(self, app: AppRecord, index: int):
        self._runner.submit(self._state.toggle_enabled(app.id, not app.enabled, index))

    def select_app(self, app: AppRecord):
        self._runner.call(self._state.set_selected_app, app.id)

    def delete_app(self, app: AppRecord):
        if show_confirmation(
            self, "Delete app", f"Delete {app.name or app.id}? This cannot be undone.",
            confirm_label="Delete", destructive=True,
        ):
            self._runner.submit(self._state.delete_app(app.id))

    def _on_error(self, message: str):
        self.status.showMessage(message, 5000)

    def _on_success(self, message: str):
        self.status.showMessage(message, 5000)

    def _on_dialog(self, title: str, content: str):
        show_message(self, title, content)


def main(config: Optional[StoreConfig] = None):
    """Entry point for the Companion Store window."""
    app = QApplication(sys.argv)
    app.setApplicationName("Companion Store")

    try:
        config = config or StoreConfig.load()
    except ConfigError as e:
        show_error(None, "Configuration error", e.message, details=str(e))
        return 1

    setup_logging(log_file=config.log_file, json_logs=config.json_logs)

    bridge = CatalogBridge()
    service = HttpAppService.from_config(config)
    state = CatalogState(
        service=service,
        preferences=PreferenceStore(config.preferences_path),
        alerts=QtAlertSink(bridge),
        analytics=LoggingAnalytics(),
    )
    state.add_listener(bridge.notify)

    runner = LoopThread()
    runner.start()

    window = StoreWindow(state, bridge, runner)
    window.show()

    runner.call(state.load_from_cache)
    runner.call(state.set_selected_app, None)
    runner.call(state.initialize, False)

    try:
        return app.exec()
    finally:
        runner.stop()
        service.close()


if __name__ == "__main__":
    sys.exit(main())
