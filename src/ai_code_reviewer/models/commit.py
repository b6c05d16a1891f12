"""
Commit Data Models

커밋 / 브랜치 관련 데이터 모델들
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple


@dataclass(frozen=True)
class CommitRef:
    """커밋 참조. 비교는 sha로만 수행"""
    sha: str
    message: str = field(default="", compare=False)

    def __post_init__(self):
        """데이터 검증"""
        if not self.sha:
            raise ValueError("Commit sha cannot be empty")

    @property
    def summary(self) -> str:
        """커밋 메시지 첫 줄"""
        return self.message.split("\n", 1)[0]


@dataclass(frozen=True)
class OpenChangeRequest:
    """열려 있는 다른 Pull Request"""
    number: int
    commits: Tuple[CommitRef, ...] = field(default_factory=tuple)

    @property
    def shas(self) -> Set[str]:
        return {commit.sha for commit in self.commits}


@dataclass(frozen=True)
class CommitContext:
    """새 커밋 계산에 필요한 Pull Request 정보"""
    owner: str
    repo_name: str
    change_request_number: int
    commits: Tuple[CommitRef, ...]
    head_branch: Optional[str] = None
    base_branch: Optional[str] = None

    @property
    def shas(self) -> List[str]:
        return [commit.sha for commit in self.commits]
