"""
Configuration Management

시스템 설정 관리
"""

import os
import yaml
from dataclasses import asdict, dataclass, field
from typing import Optional, Dict, Any
from pathlib import Path
import logging
from logging.handlers import RotatingFileHandler


DEFAULT_MODEL_NAME = "gpt-4o"
DEFAULT_INCLUDE = "**/*.cs,**/*.yml"

VALID_PROVIDERS = {"openai", "transformers"}
VALID_FALLBACK_POLICIES = {"file_level", "first_line"}
VALID_COMMIT_POLICIES = {"none", "cross_request", "reviewer_scoped", "branch_comparison"}


def _input(name: str, default: Optional[str] = None, *env_names: str) -> Optional[str]:
    """GitHub Action 입력값(INPUT_<NAME>) 조회, 없으면 일반 환경 변수 사용"""
    value = os.getenv(f"INPUT_{name.upper()}")
    if value:
        return value
    for env_name in env_names or (name.upper(),):
        value = os.getenv(env_name)
        if value:
            return value
    return default


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class GitHubConfig:
    """GitHub API 설정"""
    token: Optional[str] = None
    api_base_url: str = "https://api.github.com"
    timeout_seconds: int = 30


@dataclass
class ModelConfig:
    """언어 모델 설정"""
    provider: str = "openai"
    api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    temperature: float = 0.2
    max_tokens: int = 700
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0


@dataclass
class ReviewConfig:
    """리뷰 생성 설정"""
    include_patterns: str = DEFAULT_INCLUDE
    max_concurrency: int = 1
    fallback_policy: str = "file_level"
    system_instructions: Optional[list] = None


@dataclass
class CommitConfig:
    """새 커밋 판별 설정"""
    policy: str = "cross_request"
    base_branch: str = "main"
    reviewer: Optional[str] = None
    exclude_base_merges: bool = True


@dataclass
class LoggingConfig:
    """로깅 설정"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class AppConfig:
    """전체 애플리케이션 설정"""
    github: GitHubConfig = field(default_factory=GitHubConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    commits: CommitConfig = field(default_factory=CommitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    pull_number: Optional[int] = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """환경 변수 / GitHub Action 입력값에서 설정 로드"""
        model_name = _input("OPENAI_API_MODEL")
        if not model_name:
            logging.getLogger(__name__).warning(
                f"OPENAI_API_MODEL is not provided. Defaulting to {DEFAULT_MODEL_NAME}."
            )

        pull_number = _input("pull_number")
        include = _input("include", None, "INCLUDE", "INCLUDE_PATTERNS")
        instructions = _input("system_instructions")

        return cls(
            github=GitHubConfig(
                token=_input("GITHUB_TOKEN"),
                api_base_url=_input("github_api_url", "https://api.github.com", "GITHUB_API_URL"),
                timeout_seconds=int(_input("github_timeout", "30", "GITHUB_TIMEOUT")),
            ),
            model=ModelConfig(
                provider=_input("model_provider", "openai", "MODEL_PROVIDER"),
                api_key=_input("OPENAI_API_KEY"),
                model_name=model_name or DEFAULT_MODEL_NAME,
                temperature=float(_input("temperature", "0.2", "MODEL_TEMPERATURE")),
                max_tokens=int(_input("max_tokens", "700", "MODEL_MAX_TOKENS")),
            ),
            review=ReviewConfig(
                include_patterns=include if include and include.strip() else DEFAULT_INCLUDE,
                max_concurrency=int(_input("max_concurrency", "1", "MAX_CONCURRENCY")),
                fallback_policy=_input("fallback_policy", "file_level", "FALLBACK_POLICY"),
                system_instructions=[line.strip() for line in instructions.split("\n") if line.strip()]
                if instructions else None,
            ),
            commits=CommitConfig(
                policy=_input("commit_policy", "cross_request", "COMMIT_POLICY"),
                base_branch=_input("base_branch", "main", "BASE_BRANCH"),
                reviewer=_input("reviewer", None, "REVIEWER"),
                exclude_base_merges=_flag(_input("exclude_base_merges", None, "EXCLUDE_BASE_MERGES"), True),
            ),
            logging=LoggingConfig(
                level=_input("log_level", "INFO", "LOG_LEVEL"),
                file_path=_input("log_file", None, "LOG_FILE"),
            ),
            pull_number=int(pull_number) if pull_number and pull_number.strip().isdigit() else None,
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "AppConfig":
        """YAML 파일에서 설정 로드"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(
            github=GitHubConfig(**config_data.get('github', {})),
            model=ModelConfig(**config_data.get('model', {})),
            review=ReviewConfig(**config_data.get('review', {})),
            commits=CommitConfig(**config_data.get('commits', {})),
            logging=LoggingConfig(**config_data.get('logging', {})),
            pull_number=config_data.get('pull_number'),
        )

    def validate(self) -> None:
        """설정 유효성 검사"""
        errors = []

        # GitHub 토큰 필수 확인
        if not self.github.token:
            errors.append("GitHub token is required")

        if self.model.provider not in VALID_PROVIDERS:
            errors.append(f"Invalid model provider: {self.model.provider}")
        elif self.model.provider == "openai" and not self.model.api_key:
            errors.append("OpenAI API key is required")

        if not 0.0 <= self.model.temperature <= 2.0:
            errors.append("Temperature must be between 0.0 and 2.0")

        if self.model.max_tokens <= 0:
            errors.append("Max tokens must be positive")

        if self.review.max_concurrency <= 0:
            errors.append("Max concurrency must be positive")

        if self.review.fallback_policy not in VALID_FALLBACK_POLICIES:
            errors.append(f"Invalid fallback policy: {self.review.fallback_policy}")

        if self.commits.policy not in VALID_COMMIT_POLICIES:
            errors.append(f"Invalid commit policy: {self.commits.policy}")
        elif self.commits.policy == "reviewer_scoped" and not self.commits.reviewer:
            errors.append("Reviewer is required for the reviewer_scoped commit policy")
        elif self.commits.policy == "branch_comparison" and not self.commits.base_branch:
            errors.append("Base branch is required for the branch_comparison commit policy")

        # 로그 레벨 검증
        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환"""
        data = asdict(self)
        # 보안상 토큰과 키는 제외
        data['github'].pop('token', None)
        data['model'].pop('api_key', None)
        return data


class ConfigManager:
    """설정 관리자. 프로세스 시작 시 한 번 생성해 각 컴포넌트에 명시적으로 전달"""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig.from_env()
        self._config.validate()
        self._setup_logging()

    @property
    def config(self) -> AppConfig:
        """현재 설정 반환"""
        return self._config

    def _setup_logging(self) -> None:
        """로깅 설정"""
        logging.basicConfig(
            level=getattr(logging, self._config.logging.level.upper()),
            format=self._config.logging.format,
        )

        # 파일 로깅이 설정된 경우 로테이션 설정
        if self._config.logging.file_path:
            handler = RotatingFileHandler(
                self._config.logging.file_path,
                maxBytes=self._config.logging.max_file_size,
                backupCount=self._config.logging.backup_count,
            )
            handler.setFormatter(logging.Formatter(self._config.logging.format))

            # 루트 로거에 핸들러 추가
            root_logger = logging.getLogger()
            root_logger.addHandler(handler)
