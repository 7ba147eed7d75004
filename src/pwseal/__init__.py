"""pwseal: password-based key derivation and authenticated encryption."""

import logging

__version__ = "0.1.0"

# silent unless the embedding application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
