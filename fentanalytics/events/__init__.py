"""Gateway event listeners for FentAnalytics."""
