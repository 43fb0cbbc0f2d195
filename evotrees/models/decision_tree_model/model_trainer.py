from pathlib import Path

from sklearn.tree import DecisionTreeClassifier

from evotrees.evaluation import reporter
from evotrees.models.base_trainer import ModelTrainer as BaseModelTrainer
from .config import MODEL_CONFIG, PARAM_GRID, TRAINING_CONFIG


class ModelTrainer(BaseModelTrainer):
    """
    Trains and evaluates a single CART decision tree (Gini splits).
    """

    model_type = "decision_tree"
    display_name = "Decision Tree"
    MODEL_CONFIG = MODEL_CONFIG
    PARAM_GRID = PARAM_GRID
    TRAINING_CONFIG = {**BaseModelTrainer.TRAINING_CONFIG, **TRAINING_CONFIG}

    def _build_estimator(self, **params):
        return DecisionTreeClassifier(**params)

    def _extra_metrics(self) -> dict:
        tree = self.fitted_.estimator
        return {"tree_depth": tree.get_depth(), "tree_leaves": tree.get_n_leaves()}

    def _extra_reports(self, figures_dir: Path) -> list:
        rules = reporter.export_tree_rules(self.fitted_)
        print("[INFO] Decision rules:")
        print(rules)
        rules_path = self.reports_dir / f"tree_rules_{self.model_type}.txt"
        rules_path.write_text(rules)

        diagram = reporter.plot_tree_diagram(self.fitted_, figures_dir / f"tree_{self.model_type}.png")
        return [rules_path, diagram]
