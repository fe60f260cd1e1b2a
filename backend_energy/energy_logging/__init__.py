"""
Structured logging for Backend Energy.

JSON logs with timestamp, event_type and contract_id where relevant.
Use get_logger() in all modules.
"""

from backend_energy.energy_logging.logger import bind_contract, get_logger

__all__ = ["get_logger", "bind_contract"]
