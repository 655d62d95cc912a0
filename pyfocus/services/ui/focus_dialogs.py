from __future__ import annotations

from dataclasses import dataclass

from PyQt6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QSpinBox,
    QVBoxLayout,
)

from pyfocus.domain.models import StopPreview
from pyfocus.services.focus.timer_settings import TimerSettings
from pyfocus.utils.constants import FOCUS_PRESETS

OPEN_ENDED_LABEL = "Open-ended"
CUSTOM_LABEL = "Custom"


@dataclass(frozen=True)
class StartRequest:
    minutes: int | None  # None = open-ended
    task_title: str = ""
    boredom_level: int | None = None


@dataclass(frozen=True)
class StopOptions:
    add_time: bool = True
    count_as_completed: bool = False


class StartSessionDialog(QDialog):
    """Pick a duration (preset, custom or open-ended) and optional task details."""

    def __init__(self, *, timer_settings: TimerSettings, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Start Focus Session")

        self.preset_combo = QComboBox(self)
        self.preset_combo.addItems([f"{m} min" for m in FOCUS_PRESETS])
        self.preset_combo.addItems([CUSTOM_LABEL, OPEN_ENDED_LABEL])

        self.minutes_spin = QSpinBox(self)
        self.minutes_spin.setRange(1, 480)
        self.minutes_spin.setValue(timer_settings.get_default_focus_minutes())

        self.task_edit = QLineEdit(self)
        self.task_edit.setPlaceholderText("What are you working on? (optional)")

        self.boredom_combo = QComboBox(self)
        self.boredom_combo.addItem("Not set", None)
        for level in range(1, 6):
            self.boredom_combo.addItem(str(level), level)

        form = QFormLayout()
        form.addRow("Duration", self.preset_combo)
        form.addRow("Minutes", self.minutes_spin)
        form.addRow("Task", self.task_edit)
        form.addRow("Boredom (1-5)", self.boredom_combo)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel, self
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)

        root = QVBoxLayout(self)
        root.addLayout(form)
        root.addWidget(buttons)

        default = timer_settings.get_default_focus_minutes()
        if default in FOCUS_PRESETS:
            self.preset_combo.setCurrentIndex(FOCUS_PRESETS.index(default))
        else:
            self.preset_combo.setCurrentText(CUSTOM_LABEL)
        self.preset_combo.currentTextChanged.connect(self._on_preset_changed)
        self._on_preset_changed(self.preset_combo.currentText())

    def request(self) -> StartRequest:
        label = self.preset_combo.currentText()
        minutes = None if label == OPEN_ENDED_LABEL else int(self.minutes_spin.value())
        return StartRequest(
            minutes=minutes,
            task_title=self.task_edit.text().strip(),
            boredom_level=self.boredom_combo.currentData(),
        )

    def get_result(self) -> StartRequest | None:
        if self.exec() != QDialog.DialogCode.Accepted:
            return None
        return self.request()

    def _on_preset_changed(self, label: str) -> None:
        if label == OPEN_ENDED_LABEL:
            self.minutes_spin.setEnabled(False)
            return
        if label == CUSTOM_LABEL:
            self.minutes_spin.setEnabled(True)
            return
        self.minutes_spin.setValue(int(label.split()[0]))
        self.minutes_spin.setEnabled(False)


class StopSessionDialog(QDialog):
    """Ask how an early stop should be credited."""

    def __init__(self, *, preview: StopPreview, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("End Session Early?")
        self._preview = preview

        mins = preview.elapsed_minutes
        text = f"You focused for {mins} minute{'s' if mins != 1 else ''}."
        if preview.ended_early:
            text += f" {preview.remaining_minutes} min were left."
        self.summary_label = QLabel(text, self)

        self.add_time_cb = QCheckBox(f"Add {mins} min to today's focus time", self)
        self.add_time_cb.setChecked(True)
        self.count_cb = QCheckBox("Count as a completed session", self)
        self.count_cb.setChecked(False)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel, self
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)

        root = QVBoxLayout(self)
        root.addWidget(self.summary_label)
        root.addWidget(self.add_time_cb)
        root.addWidget(self.count_cb)
        root.addWidget(buttons)

    def options(self) -> StopOptions:
        return StopOptions(
            add_time=self.add_time_cb.isChecked(),
            count_as_completed=self.count_cb.isChecked(),
        )

    def get_result(self) -> StopOptions | None:
        if self.exec() != QDialog.DialogCode.Accepted:
            return None
        return self.options()


def ask_stop_options(preview: StopPreview | None, parent=None) -> StopOptions | None:
    """
    Decide how to credit a stop. Only an early stop of a focus session with at
    least one minute elapsed needs the dialog; None means the user cancelled.
    """
    if preview is None or preview.is_break or preview.elapsed_minutes < 1:
        return StopOptions(add_time=False, count_as_completed=False)
    if not preview.ended_early and not preview.is_open_ended:
        return StopOptions(add_time=True, count_as_completed=False)
    return StopSessionDialog(preview=preview, parent=parent).get_result()


class TimerSettingsDialog(QDialog):
    """Edit timer-level settings persisted via QSettings."""

    def __init__(self, *, timer_settings: TimerSettings, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Timer Settings")
        self._settings = timer_settings

        self.focus_spin = QSpinBox(self)
        self.focus_spin.setRange(1, 480)
        self.focus_spin.setValue(timer_settings.get_default_focus_minutes())

        self.short_break_spin = QSpinBox(self)
        self.short_break_spin.setRange(1, 60)
        self.short_break_spin.setValue(timer_settings.get_short_break_minutes())

        self.long_break_spin = QSpinBox(self)
        self.long_break_spin.setRange(1, 120)
        self.long_break_spin.setValue(timer_settings.get_long_break_minutes())

        self.interval_spin = QSpinBox(self)
        self.interval_spin.setRange(0, 12)
        self.interval_spin.setSpecialValueText("Never")
        self.interval_spin.setValue(timer_settings.get_long_break_interval())

        self.auto_breaks_cb = QCheckBox("Start breaks automatically", self)
        self.auto_breaks_cb.setChecked(timer_settings.get_auto_start_breaks())
        self.auto_next_cb = QCheckBox("Start the next focus session after a break", self)
        self.auto_next_cb.setChecked(timer_settings.get_auto_start_next_session())
        self.notifications_cb = QCheckBox("Show notifications", self)
        self.notifications_cb.setChecked(timer_settings.get_notifications_enabled())

        form = QFormLayout()
        form.addRow("Default focus (minutes)", self.focus_spin)
        form.addRow("Short break (minutes)", self.short_break_spin)
        form.addRow("Long break (minutes)", self.long_break_spin)
        form.addRow("Long break every N sessions", self.interval_spin)
        form.addRow("", self.auto_breaks_cb)
        form.addRow("", self.auto_next_cb)
        form.addRow("", self.notifications_cb)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel, self
        )
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)

        root = QVBoxLayout(self)
        root.addLayout(form)
        root.addWidget(buttons)

    def _on_accept(self) -> None:
        self._settings.set_default_focus_minutes(self.focus_spin.value())
        self._settings.set_short_break_minutes(self.short_break_spin.value())
        self._settings.set_long_break_minutes(self.long_break_spin.value())
        self._settings.set_long_break_interval(self.interval_spin.value())
        self._settings.set_auto_start_breaks(self.auto_breaks_cb.isChecked())
        self._settings.set_auto_start_next_session(self.auto_next_cb.isChecked())
        self._settings.set_notifications_enabled(self.notifications_cb.isChecked())
        self.accept()
