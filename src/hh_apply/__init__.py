"""hh-apply: hh.ru job-application assistant."""

__version__ = "0.1.0"
