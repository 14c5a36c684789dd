"""gitback: mirror GitHub and GitLab accounts into a local directory tree."""

__version__ = "0.3.0"
