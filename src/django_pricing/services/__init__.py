"""Pricing services.

- catalog: price categories, tables and entries
- surcharges: surcharge definitions and calculation
- costs: product costs and customer pricing
- resolver: price resolution waterfall
- margins: margin and sale price calculations
"""
