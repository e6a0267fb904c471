"""Domain entities shared by the pipeline, repository and provider client."""

from cliphub.domain.clips import Clip, ClipSubmission, ReadyNotification, SubmittedAsset

__all__ = [
    "Clip",
    "ClipSubmission",
    "ReadyNotification",
    "SubmittedAsset",
]
