"""Sample REST service used as a load-testing workload"""

__version__ = "1.0.0"
