"""MacBook Cooler agent command line application."""
