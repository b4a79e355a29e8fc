"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/stages.py
Pipeline stages of the duplicate grouper: size → partial hash → full hash.

STAGE CONTRACTS
---------------
Each stage implements a consistent `process()` interface that:
  • Accepts candidate groups from the previous stage
  • Returns refined candidate groups for the next stage
  • Appends groups whose content identity is established to a shared list
  • Reports progress via callback (stage name, processed count, total count)
  • Respects cancellation via stopped_flag callback

COST MODEL
----------
• Size grouping reads nothing: size is known from stat.
• Partial hashing reads at most `partial_bytes` per storage object.
• Files not larger than `partial_bytes` are confirmed right after the partial stage,
  their prefix digest is their full digest.
• Full hashing is paid only by members of surviving partial-hash groups.
"""

from typing import List, Optional, Callable

from dupescope.core.grouper import FileGrouperImpl
from dupescope.core.interfaces import PipelineStage
from dupescope.core.models import CandidateGroup, FileRecord, Stage


class SizeStageImpl:
    def __init__(self, grouper: FileGrouperImpl):
        self.grouper = grouper

    def process(
            self,
            files: List[FileRecord],
            stopped_flag: Optional[Callable[[], bool]] = None,
            progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> List[CandidateGroup]:
        """
        Group by file size.
        Returns list of CandidateGroups with 2+ regular files of the same size.
        """
        if stopped_flag and stopped_flag():
            return []

        comparable = [f for f in files if f.is_regular]
        size_groups = self.grouper.group_by_size(comparable)
        groups = [
            CandidateGroup(size=size, files=files_list)
            for size, files_list in size_groups.items()
        ]

        if progress_callback:
            total_files = len(files)
            progress_callback(Stage.SIZE.value, total_files, total_files)

        return groups


class PartialHashStage(PipelineStage):
    """
    Splits size groups by the digest of the first `partial_bytes` of content.
    Groups of files that fit entirely in the prefix are confirmed here.
    """

    def __init__(self, grouper: FileGrouperImpl):
        self.grouper = grouper

    def get_threshold(self) -> int:
        return self.grouper.hasher.partial_bytes

    def get_stage_name(self) -> str:
        return Stage.PARTIAL.value

    def process(
        self,
        groups: List[CandidateGroup],
        confirmed: List[CandidateGroup],
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> List[CandidateGroup]:
        if stopped_flag and stopped_flag():
            return []

        new_potential_groups = []
        total_files = sum(len(group.files) for group in groups)
        processed_files = 0
        threshold = self.get_threshold()

        for group in groups:
            if stopped_flag and stopped_flag():
                return []

            hash_groups = self.grouper.group_by_partial_hash(group.files)
            for files_in_group in hash_groups.values():
                if group.size <= threshold:
                    confirmed.append(CandidateGroup(size=group.size, files=files_in_group))
                else:
                    new_potential_groups.append(CandidateGroup(size=group.size, files=files_in_group))

            processed_files += len(group.files)
            if progress_callback:
                progress_callback(self.get_stage_name(), processed_files, total_files)

        return new_potential_groups


class FullHashStage(PipelineStage):
    def __init__(self, grouper: FileGrouperImpl):
        self.grouper = grouper

    def process(
            self,
            groups: List[CandidateGroup],
            confirmed: List[CandidateGroup],
            stopped_flag: Optional[Callable[[], bool]] = None,
            progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> List[CandidateGroup]:
        if stopped_flag and stopped_flag():
            return []

        total_files = sum(len(g.files) for g in groups)
        processed_files = 0

        for group in groups:
            if stopped_flag and stopped_flag():
                return []

            hash_groups = self.grouper.group_by_full_hash(group.files)
            for files in hash_groups.values():
                confirmed.append(CandidateGroup(size=group.size, files=files))

            processed_files += len(group.files)
            if progress_callback:
                progress_callback(Stage.FULL.value, processed_files, total_files)

        return []
