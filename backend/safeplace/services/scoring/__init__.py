"""Safety score engine: aggregation, scoring, trend and peer comparison."""
