"""okrdash - OKR dashboard persistence and service backend"""

__version__ = "1.0.0"
