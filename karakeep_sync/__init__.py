"""One-way synchronization of Karakeep bookmarks into SiYuan documents."""

__version__ = "0.1.0"
