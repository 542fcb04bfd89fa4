"""DNS-01 challenge handling: parse tool output, check live DNS."""

from tgcert.challenge.resolver import CHALLENGE_MARKER, DnsChallengeResolver

__all__ = ["CHALLENGE_MARKER", "DnsChallengeResolver"]
