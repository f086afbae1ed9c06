"""Steam grid image downloader with category overlays."""

__version__ = "0.1.0"
