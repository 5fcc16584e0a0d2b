"""
wacz-preparator: Archive-It collection to WACZ

Downloads every WARC file of an Archive-It collection, verifies it against
the remote SHA-1, builds a page index from crawl and seed information, and
packages the result as a single WACZ file.
"""

__version__ = "1.0.0"
__author__ = "wacz-preparator Project"
__description__ = "Prepares a WACZ file out of an Archive-It collection"
