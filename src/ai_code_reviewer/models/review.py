"""
Review Data Models

코드 리뷰 관련 데이터 모델들
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, field_validator


@dataclass(frozen=True)
class ReviewTarget:
    """리뷰 대상 Pull Request 정보 (읽기 전용)"""
    owner: str
    repo_name: str
    change_request_number: int
    title: str = ""
    description: str = ""

    def __post_init__(self):
        """데이터 검증"""
        if not self.owner or not self.repo_name:
            raise ValueError("Owner and repository name are required")
        if self.change_request_number <= 0:
            raise ValueError("Pull request number must be positive")

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo_name}"


@dataclass(frozen=True)
class Finding:
    """위치 변환 전의 리뷰 코멘트 후보"""
    file_path: str
    target_line: Optional[int]
    comment_body: str

    def __post_init__(self):
        """데이터 검증"""
        if not self.file_path:
            raise ValueError("File path cannot be empty")
        if not self.comment_body.strip():
            raise ValueError("Comment body cannot be empty")


@dataclass(frozen=True)
class AnchoredComment:
    """최종 리뷰 코멘트. diff_position이 없으면 파일 단위 코멘트"""
    file_path: str
    comment_body: str
    diff_position: Optional[int] = None
    target_line: Optional[int] = None

    def __post_init__(self):
        """데이터 검증"""
        if self.diff_position is not None and self.diff_position <= 0:
            raise ValueError("Diff position must be positive")
        if not self.comment_body.strip():
            raise ValueError("Comment body cannot be empty")

    @property
    def is_anchored(self) -> bool:
        return self.diff_position is not None

    def to_github_payload(self) -> Dict[str, Any]:
        """GitHub review API 코멘트 형식으로 변환"""
        payload: Dict[str, Any] = {"path": self.file_path, "body": self.comment_body}
        if self.diff_position is not None:
            payload["position"] = self.diff_position
        return payload


@dataclass(frozen=True)
class ParsedFindings:
    """모델 응답 파싱 성공 결과 (빈 목록은 '지적할 것이 없음')"""
    findings: List[Finding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ParseFailure:
    """모델 응답 파싱 실패 결과"""
    reason: str
    raw_reply: str = ""

    @property
    def ok(self) -> bool:
        return False

    @property
    def findings(self) -> List[Finding]:
        return []


ParseOutcome = Union[ParsedFindings, ParseFailure]


# Pydantic models for language model reply validation
class ReviewItem(BaseModel):
    """모델 응답의 개별 리뷰 항목"""
    lineNumber: Optional[Union[int, str]] = None
    reviewComment: str

    @field_validator('reviewComment')
    @classmethod
    def validate_comment(cls, v):
        return v.strip()


class ModelReply(BaseModel):
    """모델 응답 전체: {"reviews": [...]}"""
    reviews: List[ReviewItem]
