from __future__ import annotations

from PyQt6.QtCore import QPoint, Qt, pyqtSignal
from PyQt6.QtWidgets import QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

WARN_AMBER_SECONDS = 300
WARN_RED_SECONDS = 60


def color_for(seconds: int, *, is_break: bool, is_open_ended: bool) -> str:
    if is_break:
        return "blue"
    if is_open_ended:
        return "green"
    if seconds <= WARN_RED_SECONDS:
        return "red"
    if seconds <= WARN_AMBER_SECONDS:
        return "amber"
    return "green"


class FloatingTimerWindow(QWidget):
    """Small always-on-top window for session countdown control."""

    pause_resume_clicked = pyqtSignal()
    stop_clicked = pyqtSignal()
    skip_break_clicked = pyqtSignal()
    moved = pyqtSignal(QPoint)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Focus Timer")
        self.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, True)
        self.setWindowFlag(Qt.WindowType.Tool, True)
        self.setMinimumWidth(240)

        self.caption_label = QLabel("Focus", self)
        self.caption_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.time_label = QLabel("25:00", self)
        self.time_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.pause_btn = QPushButton("Pause", self)
        self.stop_btn = QPushButton("Stop", self)
        self.skip_btn = QPushButton("Skip break", self)
        self.skip_btn.setVisible(False)

        buttons = QHBoxLayout()
        buttons.addWidget(self.pause_btn)
        buttons.addWidget(self.stop_btn)
        buttons.addWidget(self.skip_btn)

        root = QVBoxLayout(self)
        root.addWidget(self.caption_label)
        root.addWidget(self.time_label)
        root.addLayout(buttons)

        self.pause_btn.clicked.connect(self.pause_resume_clicked.emit)
        self.stop_btn.clicked.connect(self.stop_clicked.emit)
        self.skip_btn.clicked.connect(self.skip_break_clicked.emit)
        self._color = ""
        self.set_color_state("green")

    @property
    def color_state(self) -> str:
        return self._color

    def set_countdown(self, seconds: int) -> None:
        mins, sec = divmod(max(0, seconds), 60)
        self.time_label.setText(f"{mins:02d}:{sec:02d}")

    def set_paused(self, paused: bool) -> None:
        self.pause_btn.setText("Resume" if paused else "Pause")

    def set_mode(self, *, is_break: bool, is_open_ended: bool, task_title: str = "") -> None:
        if is_break:
            caption = "Break"
        elif task_title:
            caption = task_title
        else:
            caption = "Open focus" if is_open_ended else "Focus"
        self.caption_label.setText(caption)
        self.skip_btn.setVisible(is_break)

    def set_color_state(self, level: str) -> None:
        palette = {
            "green": ("#0f3d28", "#9ff7c7"),
            "amber": ("#4a3609", "#ffd483"),
            "red": ("#4a1111", "#ff9f9f"),
            "blue": ("#0f2a4a", "#9fcbff"),
        }
        if level not in palette:
            level = "green"
        self._color = level
        bg, fg = palette[level]
        self.time_label.setStyleSheet(
            "font-size: 34px; font-weight: 700; padding: 10px; "
            f"border-radius: 10px; background: {bg}; color: {fg};"
        )

    def moveEvent(self, event) -> None:  # noqa: N802 (Qt override)
        super().moveEvent(event)
        self.moved.emit(self.pos())
