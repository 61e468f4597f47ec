"""velacap command-line interface."""
