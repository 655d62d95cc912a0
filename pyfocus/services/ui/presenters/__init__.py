from .timer_presenter import TimerPresenter

__all__ = ["TimerPresenter"]
