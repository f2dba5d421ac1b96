"""Marketplace Profitability API"""
