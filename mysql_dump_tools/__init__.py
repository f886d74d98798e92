"""Run mysqldump against a configured connection and save the output to a file."""

__version__ = "0.1.0"
