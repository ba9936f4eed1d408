"""web-toolbox: capture screenshots, PDFs, text and console logs from web pages."""

__version__ = "1.0.0"
