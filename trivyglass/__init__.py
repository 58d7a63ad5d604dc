"""trivyglass: multi-cluster access to Trivy security report custom resources."""

__version__ = "0.3.0"
