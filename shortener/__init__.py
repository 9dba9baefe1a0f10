"""Link shortener service: short codes, expiring links and click counts."""

__version__ = "1.0.0"
