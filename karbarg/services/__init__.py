from karbarg.services.auth_service import AuthService, AuthError
from karbarg.services.system_config_service import SystemConfigService
from karbarg.services.quality_scoring import (
    AQSCalculator,
    AQSWeights,
    AnswerSignals,
    QualityLabeler,
    QualityThresholds,
)
from karbarg.services.answer_quality_service import AnswerQualityService
from karbarg.services.reaction_service import ReactionService
from karbarg.services.flag_service import FlagService
from karbarg.services.question_service import QuestionService, record_question_view
from karbarg.services.answer_service import AnswerService
from karbarg.services.reputation_service import ReputationService, reputation_score, rank_leaderboard
from karbarg.services.microcopy_service import MicrocopyService, segment_for_answer_count
from karbarg.services.microcopy_stats_service import MicrocopyStatsService
from karbarg.services.career_content import get_career_content, load_career_content
from karbarg.services.career_progress_service import CareerProgressService, TaskStatus, task_status
