"""Karakeep → SiYuan reconciliation: engine, formatter and asset pipeline."""
