"""Command logger for the router and assistant bridge."""

from utils.log_utils import log


class CommandLogger:
    def __init__(self, system: str = "CMD") -> None:
        self.system = system

    def info(self, message: str) -> None:
        log(self.system, message, "INFO")

    def warn(self, message: str) -> None:
        log(self.system, message, "WARN")

    def error(self, message: str) -> None:
        log(self.system, message, "ERROR")
