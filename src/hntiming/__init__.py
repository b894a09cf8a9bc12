"""Bayesian analysis of when to post on HackerNews.

Subpackages:
- config: project paths
- data_handling: loading, cleaning, validating and simulating post data
- analysis.model_fitting: Stan models, NUTS/ADVI fitting, PSIS-LOO, summaries
- analysis.visualization: exploratory and posterior figures
"""

__version__ = "0.1.0"
