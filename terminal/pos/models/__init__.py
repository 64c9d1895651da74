from .settings import TerminalSetting

__all__ = [
    'TerminalSetting',
]
