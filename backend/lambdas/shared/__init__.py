"""Helpers shared by the telemetry Lambdas."""
