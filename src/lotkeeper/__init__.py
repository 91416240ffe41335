"""LotKeeper: typed parking slot allocation with a FIFO waitlist and hourly billing"""

__version__ = "1.0.0"
