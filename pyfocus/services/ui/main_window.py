from __future__ import annotations

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QMainWindow,
    QPushButton,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from pyfocus.services.focus.session_repository import SessionRepository
from pyfocus.services.focus.timer_settings import TimerSettings
from pyfocus.services.ui.floating_timer_window import FloatingTimerWindow, color_for
from pyfocus.services.ui.focus_dialogs import (
    StartSessionDialog,
    TimerSettingsDialog,
    ask_stop_options,
)
from pyfocus.services.ui.ports.messages import IMessageService
from pyfocus.services.ui.presenters.timer_presenter import TimerPresenter

RECENT_ENTRIES = 10


def format_clock(seconds: int) -> str:
    mins, sec = divmod(max(0, int(seconds)), 60)
    hours, mins = divmod(mins, 60)
    if hours:
        return f"{hours}:{mins:02d}:{sec:02d}"
    return f"{mins:02d}:{sec:02d}"


class FocusWindow(QMainWindow):
    """Thin PyQt window: renders what the presenter emits and forwards clicks to it."""

    def __init__(
        self,
        *,
        presenter: TimerPresenter,
        timer_settings: TimerSettings,
        repository: SessionRepository,
        messages: IMessageService,
        popup: FloatingTimerWindow | None = None,
        app_title: str = "PyFocus Timer",
    ) -> None:
        super().__init__()
        self.setWindowTitle(app_title)
        self.resize(420, 480)

        self.presenter = presenter
        self.timer_settings = timer_settings
        self.repository = repository
        self.messages = messages
        self.popup = popup

        # Widgets
        self.mode_label = QLabel("Ready", self)
        self.mode_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.time_label = QLabel(format_clock(timer_settings.get_default_focus_minutes() * 60), self)
        self.time_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.time_label.setStyleSheet("font-size: 48px; font-weight: 700;")
        self.focus_mode_label = QLabel("", self)
        self.focus_mode_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.start_btn = QPushButton("Start…", self)
        self.pause_btn = QPushButton("Pause", self)
        self.stop_btn = QPushButton("Stop", self)
        self.skip_btn = QPushButton("Skip break", self)

        buttons = QHBoxLayout()
        for b in (self.start_btn, self.pause_btn, self.stop_btn, self.skip_btn):
            buttons.addWidget(b)

        self.history = QListWidget(self)

        central = QWidget(self)
        root = QVBoxLayout(central)
        root.addWidget(self.mode_label)
        root.addWidget(self.time_label)
        root.addWidget(self.focus_mode_label)
        root.addLayout(buttons)
        root.addWidget(QLabel("Recent sessions", self))
        root.addWidget(self.history, 1)
        self.setCentralWidget(central)

        self._build_actions()
        self._build_menu()
        self.setStatusBar(QStatusBar(self))

        # Signals
        self.start_btn.clicked.connect(self._start_dialog)
        self.pause_btn.clicked.connect(self._toggle_pause)
        self.stop_btn.clicked.connect(self._stop)
        self.skip_btn.clicked.connect(self._skip_break)

        presenter.tick.connect(self._on_tick)
        presenter.state_changed.connect(self._on_state_changed)
        presenter.session_ended.connect(self._on_session_ended)
        presenter.focus_mode_changed.connect(self._on_focus_mode_changed)
        presenter.action_failed.connect(self._on_action_failed)

        if popup is not None:
            popup.pause_resume_clicked.connect(self._toggle_pause)
            popup.stop_clicked.connect(self._stop)
            popup.skip_break_clicked.connect(self._skip_break)
            pos = timer_settings.get_popup_window_pos()
            if pos is not None:
                popup.move(pos)
            popup.moved.connect(timer_settings.set_popup_window_pos)

        self._on_state_changed(False, False, False)
        self._refresh_history()

    # ---------- UI creation ----------
    def _build_actions(self):
        self.exit_action = QAction("&Exit", self)
        self.exit_action.setShortcut("Ctrl+Q")
        self.exit_action.triggered.connect(QApplication.instance().quit)

        self.act_start = QAction(
            "Start Focus…", self, shortcut=QKeySequence("Ctrl+N"), triggered=self._start_dialog
        )
        self.act_pause = QAction(
            "Pause / Resume", self, shortcut=QKeySequence("Ctrl+P"), triggered=self._toggle_pause
        )
        self.act_stop = QAction("Stop", self, shortcut=QKeySequence("Ctrl+."), triggered=self._stop)
        self.act_break = QAction("Start Break", self, triggered=self._start_break)
        self.act_skip = QAction("Skip Break", self, triggered=self._skip_break)
        self.act_popup = QAction(
            "Floating Timer", self, checkable=True, triggered=self._toggle_popup
        )
        self.act_settings = QAction("Timer Settings…", self, triggered=self._open_settings)

    def _build_menu(self):
        m = self.menuBar()
        filem = m.addMenu("&File")
        filem.addAction(self.act_settings)
        filem.addSeparator()
        filem.addAction(self.exit_action)

        sessm = m.addMenu("&Session")
        for a in (self.act_start, self.act_pause, self.act_stop):
            sessm.addAction(a)
        sessm.addSeparator()
        sessm.addAction(self.act_break)
        sessm.addAction(self.act_skip)

        viewm = m.addMenu("&View")
        viewm.addAction(self.act_popup)

    # ---------- Actions ----------
    def _start_dialog(self) -> None:
        request = StartSessionDialog(timer_settings=self.timer_settings, parent=self).get_result()
        if request is None:
            return
        self.presenter.start(
            request.minutes,
            task_title=request.task_title,
            boredom_level=request.boredom_level,
        )

    def _toggle_pause(self) -> None:
        self.presenter.toggle_pause()

    def _stop(self) -> None:
        options = ask_stop_options(self.presenter.stop_preview(), parent=self)
        if options is None:
            return
        self.presenter.stop(
            add_time=options.add_time, count_as_completed=options.count_as_completed
        )

    def _start_break(self) -> None:
        self.presenter.start_break()

    def _skip_break(self) -> None:
        self.presenter.skip_break()

    def _toggle_popup(self, on: bool) -> None:
        if self.popup is None:
            return
        self.popup.setVisible(on)

    def _open_settings(self) -> None:
        TimerSettingsDialog(timer_settings=self.timer_settings, parent=self).exec()

    # ---------- Presenter slots ----------
    def _on_tick(self, seconds: int, total: int) -> None:
        self.time_label.setText(format_clock(seconds))
        record = self.presenter.record
        if self.popup is not None and record is not None:
            self.popup.set_countdown(seconds)
            self.popup.set_color_state(
                color_for(seconds, is_break=record.is_break, is_open_ended=record.is_open_ended)
            )

    def _on_state_changed(self, active: bool, paused: bool, is_break: bool) -> None:
        record = self.presenter.record
        if not active:
            self.mode_label.setText("Ready")
        elif is_break:
            self.mode_label.setText("Break (paused)" if paused else "Break")
        else:
            title = record.task_title if record is not None and record.task_title else "Focus"
            self.mode_label.setText(f"{title} (paused)" if paused else title)

        self.start_btn.setEnabled(not active)
        self.act_start.setEnabled(not active)
        self.act_break.setEnabled(not active)
        self.pause_btn.setEnabled(active)
        self.pause_btn.setText("Resume" if paused else "Pause")
        self.act_pause.setEnabled(active)
        self.stop_btn.setEnabled(active)
        self.act_stop.setEnabled(active)
        self.skip_btn.setEnabled(active and is_break)
        self.act_skip.setEnabled(active and is_break)

        if self.popup is not None:
            self.popup.set_paused(paused)
            if record is not None:
                self.popup.set_mode(
                    is_break=record.is_break,
                    is_open_ended=record.is_open_ended,
                    task_title=record.task_title,
                )

    def _on_session_ended(self) -> None:
        self.time_label.setText(format_clock(self.timer_settings.get_default_focus_minutes() * 60))
        self.statusBar().showMessage("Session ended", 3000)
        self._refresh_history()

    def _on_focus_mode_changed(self, active: bool) -> None:
        self.focus_mode_label.setText("Focus mode on" if active else "")

    def _on_action_failed(self, text: str) -> None:
        self.messages.warning(self, "Focus Timer", text)

    def _refresh_history(self) -> None:
        self.history.clear()
        for entry in reversed(self.repository.completed_entries()[-RECENT_ENTRIES:]):
            label = entry.linked_task_title or entry.type
            self.history.addItem(
                f"{entry.date}  {entry.actual_duration_minutes} min  {label}  ({entry.status.value})"
            )

    # ---------- Close ----------
    def closeEvent(self, event):
        self.presenter.detach()
        if self.popup is not None:
            self.popup.close()
        super().closeEvent(event)
