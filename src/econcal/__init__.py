"""Economic calendar extraction and trade-session correlation"""

__version__ = "2.2.0"
