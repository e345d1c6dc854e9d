from .connect import run_connect

__all__ = ["run_connect"]
