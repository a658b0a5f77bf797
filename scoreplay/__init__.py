"""scoreplay: plays time-synchronised ASCII-art scores in the terminal."""

__version__ = "0.1.0"
