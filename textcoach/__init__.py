"""Inference orchestration core for the SMS coaching agent."""
