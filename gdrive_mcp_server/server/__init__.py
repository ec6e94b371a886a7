from .drive import configure_drive_tools

__all__ = ["configure_drive_tools"]
