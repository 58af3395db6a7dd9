"""TweetSearch: engagement-ranked search over an asynchronous job-based search API."""

__version__ = "1.0.0"
