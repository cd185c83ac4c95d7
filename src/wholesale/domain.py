"""Domain initialization and configuration.

A single bounded context holds the catalogue, customers, carts and orders so
that order placement can change all four inside one Unit of Work.
"""

from protean.domain import Domain

from wholesale.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
wholesale = Domain(name="wholesale")
