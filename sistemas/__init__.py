# sistemas/__init__.py
"""Sistemas do AUTO RECURSO"""
