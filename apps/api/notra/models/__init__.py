from notra.models.learning_session import LearningSession

__all__ = ["LearningSession"]
