"""
Run configuration for the mean-variance pipeline.

Every setting has a default, so a run needs no arguments:

    rho            0.05     risk aversion in the objective
    trading_days   250      periods per year used to annualize returns
    backend        scipy    solver backend ('scipy' or 'cvxpy')
    data_file      None     price file; None uses the built-in example
    export_path    None     LP file to write the model to
    plot_dir       None     directory for PNG plots
    log_dir        logs     directory for log files
"""

from typing import List, Optional

from portfolio_qp.core.statistics import TRADING_DAYS


class OptimizationConfig:
    """
    Stores the user-configurable assumptions of a run.

    Attributes:
        rho: Risk aversion (nominally 0 <= rho <= 1, not enforced)
        trading_days: Trading days per year
        backend: Solver backend name
        data_file: Optional path to a CSV/Excel price file
        sheet: Sheet name or index for Excel files
        export_path: Optional LP export path
        plot_dir: Optional plot output directory
        log_dir: Log file directory
    """

    DEFAULT_RHO = 0.05

    def __init__(self):
        """Initialize with default assumptions."""
        self.rho = self.DEFAULT_RHO
        self.trading_days = TRADING_DAYS
        self.backend = "scipy"
        self.data_file: Optional[str] = None
        self.sheet = 0
        self.export_path: Optional[str] = None
        self.plot_dir: Optional[str] = None
        self.log_dir = "logs"

    @classmethod
    def from_args(cls, args) -> "OptimizationConfig":
        """Build a config from parsed command-line arguments."""
        config = cls()
        for attr in ("rho", "trading_days", "backend", "data_file", "sheet",
                     "export_path", "plot_dir", "log_dir"):
            value = getattr(args, attr, None)
            if value is not None:
                setattr(config, attr, value)
        return config

    def summary_lines(self) -> List[str]:
        """Human-readable lines describing the current assumptions."""
        return [
            f"  Data: {self.data_file or 'built-in example'}",
            f"  Risk aversion (rho): {self.rho}",
            f"  Trading days per year: {self.trading_days}",
            f"  Solver backend: {self.backend}",
            f"  Model export: {self.export_path or 'disabled'}",
        ]
