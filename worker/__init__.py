"""
Rendition encoding, orchestration and manifest assembly
"""
