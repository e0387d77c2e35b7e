"""Service layer: project discovery, fzf selection and tmux sessions."""

from cs.services.coordinator import search
from cs.services.selector import SelectorBridge, spawn_selector
from cs.services.tmux import SessionOrchestrator
from cs.services.walker import Walker, unique_match

__all__ = [
    'SelectorBridge',
    'SessionOrchestrator',
    'Walker',
    'search',
    'spawn_selector',
    'unique_match',
]
