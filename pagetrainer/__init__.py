"""
PageTrainer - Incremental discovery engine for web security crawlers

Watches the responses produced while probing a target, spots forms,
links and cookies that were not known before, and feeds pages holding
them back into the crawl.
"""

__version__ = '1.0.0'
