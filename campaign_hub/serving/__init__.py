"""
Ad serving primitives.

- ``constants``: scoring weights, serving limits and billing constants
- ``budget``: campaign/ad budget accounting
- ``scoring``: candidate scoring and selection
- ``tokens``: signed impression tokens
- ``client_info``: client IP and User-Agent classification
- ``selector``: candidate fetching, scoring and impression reservation
"""
