import os
from pathlib import Path


class PathManager:
    def __init__(self, base_dir=None):
        if base_dir is None:
            env_home = os.environ.get("HNTIMING_HOME")
            if env_home:
                self.base_dir = Path(env_home)
            else:
                # Default to project root (three levels up from this file)
                self.base_dir = Path(__file__).parent.parent.parent.parent
        else:
            self.base_dir = Path(base_dir)

        # Main directories at project root
        self.data_dir = self.base_dir / "data"
        self.results_dir = self.base_dir / "results"

        # Data subdirectories
        self.raw_data_dir = self.data_dir / "raw"

        # Results subdirectories
        self.model_fitting_dir = self.results_dir / "model_fitting"
        self.stan_build_dir = self.results_dir / "stan_build"

    # Data paths
    def get_raw_posts_path(self, filename):
        """Get path for raw post dumps (CSV or Parquet)"""
        return self.raw_data_dir / filename

    # Results paths
    def get_model_fitting_path(self, experiment_name):
        """Get output directory for a named run (fits, tables and figures)"""
        return self.model_fitting_dir / experiment_name

    def get_stan_build_dir(self):
        """Get directory holding compiled Stan executables"""
        return self.stan_build_dir
