"""Security pattern validator for Next.js App Router projects."""

__version__ = "1.0.0"
