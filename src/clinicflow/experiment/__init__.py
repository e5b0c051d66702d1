"""Experimentation layer: headless runs, replications, confidence intervals."""
