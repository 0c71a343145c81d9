"""
only-agent: turn a chat agent's tool-call response into reviewable actions
and apply the approved ones to a project tree.
"""

__version__ = "0.1.0"
