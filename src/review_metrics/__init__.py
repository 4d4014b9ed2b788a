"""Code-review engagement and latency metrics from GitHub pull request history."""

__version__ = "0.1.0"
