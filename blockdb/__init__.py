"""Block-structured record files: heap files, B+ trees and external merge sort."""

__version__ = "0.1.0"