"""
Question set generation and export.

selector   criteria → ordered question set (count, then sample or take in order)
exporter   question set → txt / md / pdf bytes
errors     typed failures translated to HTTP responses in main.py
"""
