"""Storage helpers: capacity, quantities, commands and the error taxonomy."""
