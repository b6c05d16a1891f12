"""
AI Code Reviewer

Pull Request diff를 언어 모델로 리뷰하고 diff position에 코멘트를 남기는 시스템
"""

__version__ = "1.0.0"

from .api import AIReviewerAPI

__all__ = ["AIReviewerAPI"]
