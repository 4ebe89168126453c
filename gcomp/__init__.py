"""
gcomp: Accelerator-Resident Lossless Compression Pipeline

Stages flat binary files on a compute accelerator, compresses and
decompresses them through a plan-based codec engine on dedicated execution
streams, and verifies that round trips reproduce the input byte for byte.
"""

__version__ = "0.1.0"
