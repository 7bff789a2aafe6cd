"""funfull_server - Booking API on top of a Google spreadsheet.

Slots, services and orders live in sheets of one spreadsheet; this package
maps their rows to records and serves them over HTTP.
"""

__version__ = "1.0.0"
