"""Clean scaffold -- ASP.NET Clean Architecture solution generator."""

__version__ = "0.1.0"
