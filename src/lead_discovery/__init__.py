"""Lead Discovery Service.

Turns a free-text lead request into a normalized contact table: the request
is translated into prospect filters, a prospect list job is polled to
completion, and a synchronous fallback provider covers empty or failed
primary results.
"""

__version__ = "1.0.0"
