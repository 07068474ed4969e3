"""
Site Crawler

Fetches a seed page and, concurrently, every same-origin page it links to.
"""

__version__ = "1.0.0"
__description__ = "A bounded-concurrency crawler for the same-origin links of a seed page"
