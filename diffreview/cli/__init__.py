"""diffreview command-line interface."""
