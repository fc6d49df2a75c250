"""
Reference image resolution.

Priority per job:
1. A user-supplied template anchors every job, job 0 included.
2. Without a template, job 0 gets no reference.
3. Later jobs reuse job 0's image if it succeeded, otherwise nothing.
"""

from typing import Optional

from gbase_slides.models.batch import BatchContext, ImageData, ReferenceSource


class ReferenceResolver:
    """Stateless: the cached first image is owned by the orchestrator run."""

    def source_for(
        self,
        batch: BatchContext,
        job_index: int,
        cached_first_image: Optional[ImageData]
    ) -> ReferenceSource:
        if batch.user_template is not None:
            return ReferenceSource.USER_TEMPLATE
        if job_index == 0 or cached_first_image is None:
            return ReferenceSource.NONE
        return ReferenceSource.FIRST_SLIDE

    def resolve(
        self,
        batch: BatchContext,
        job_index: int,
        cached_first_image: Optional[ImageData]
    ) -> Optional[ImageData]:
        source = self.source_for(batch, job_index, cached_first_image)
        if source == ReferenceSource.USER_TEMPLATE:
            return batch.user_template
        if source == ReferenceSource.FIRST_SLIDE:
            return cached_first_image
        return None
