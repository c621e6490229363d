"""
Treatment calculation engine.

Pure Python math. No I/O, no database.
Given a merged CalculationInput (template + overrides + measurement + fabric),
produce fabric yield, manufacturing cost, labor and a marked-up sell price.
"""
