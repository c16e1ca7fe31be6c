"""
Bootstrap a macOS machine: Homebrew, brew bundle, system preferences and oh-my-zsh.
"""

__all__ = ["brewfile", "preferences", "defaults", "installer", "cli"]
__version__ = "0.1.0"
