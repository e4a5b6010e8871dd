# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Liftout team lifecycle service."""
