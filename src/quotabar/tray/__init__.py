from quotabar.tray.bridge import summary_line

__all__ = ["summary_line"]
