from task_evaluator.models.evaluation import Evaluation

__all__ = ["Evaluation"]
