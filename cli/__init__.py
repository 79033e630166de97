"""Command line interface for neuralnet runs."""
