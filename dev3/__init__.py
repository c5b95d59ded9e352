"""Dev3 — multi-model decision deliberation.

A proposal collects one vote from each required voter; once every voter
has weighed in, the votes are synthesized into a single consensus.
"""

__version__ = "0.1.0"
