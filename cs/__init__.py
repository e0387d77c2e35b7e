"""cs - jump into a project directory and attach a tmux session to it."""

__version__ = '0.3.0'
