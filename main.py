import pandas as pd

from analysis_manager import ChurnAnalysisManager
from config import Config
from filters import StatusFilter, TierFilter

Config.setup_logging()

# Add filters based on user selection
filters = [StatusFilter(['Active', 'Expired']), TierFilter()]

# Initialize and load data
analyzer = ChurnAnalysisManager(now=pd.Timestamp.now(), filters=filters)
analyzer = analyzer.load_data()

analyzer.compute_churn_analysis()
analyzer.compute_studio_analysis()

# Get all metrics
churn_summary = analyzer.get_churn_summary()
studio_summary = analyzer.get_studio_summary()
analysis_summary = analyzer.get_analysis_summary()

print(churn_summary.to_string(index=False))
print(studio_summary.to_string(index=False))
print(analyzer.export_data())
