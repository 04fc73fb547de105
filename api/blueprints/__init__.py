"""
Blueprints Package

Contains all Flask blueprints for the TA REST API.
"""

from .monitoring_bp import create_monitoring_blueprint
from .registration_bp import create_registration_blueprint
from .ta_bp import create_ta_blueprint

__all__ = [
    "create_registration_blueprint",
    "create_ta_blueprint",
    "create_monitoring_blueprint",
]
