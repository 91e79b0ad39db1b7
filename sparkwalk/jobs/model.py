"""
Delay Model
-----------
Logistic regression predicting whether a flight departs late.

Steps:
1. Split tidy, featurized flights into train/test
2. Assemble feature columns into a vector
3. Fit logistic regression on the binarized delay label
4. Score the held-out split (area under ROC)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pyspark.ml import Pipeline, PipelineModel
from pyspark.ml.classification import LogisticRegression
from pyspark.ml.evaluation import BinaryClassificationEvaluator
from pyspark.ml.feature import VectorAssembler
from pyspark.sql import DataFrame

logger = logging.getLogger(__name__)

DEFAULT_FEATURES: List[str] = ["Month", "DayofMonth", "dep_period", "Distance"]
LABEL_COL = "delayed"


@dataclass
class ModelReport:
    """Summary of one train/evaluate run"""
    area_under_roc: float
    train_rows: int
    test_rows: int
    intercept: float
    coefficients: Dict[str, float] = field(default_factory=dict)


def split_dataset(
    df: DataFrame,
    train_fraction: float = 0.8,
    seed: int = 1099
) -> Tuple[DataFrame, DataFrame]:
    """Random train/test split"""
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be between 0 and 1, got {train_fraction}")
    train, test = df.randomSplit([train_fraction, 1.0 - train_fraction], seed=seed)
    return train, test


def train_delay_model(
    train: DataFrame,
    features: Optional[List[str]] = None,
    label_col: str = LABEL_COL,
    max_iter: int = 20
) -> PipelineModel:
    features = features or DEFAULT_FEATURES

    assembler = VectorAssembler(
        inputCols=features,
        outputCol="features",
        handleInvalid="skip",
    )
    lr = LogisticRegression(
        featuresCol="features",
        labelCol=label_col,
        maxIter=max_iter,
    )
    return Pipeline(stages=[assembler, lr]).fit(train)


def evaluate_delay_model(model: PipelineModel, test: DataFrame, label_col: str = LABEL_COL) -> float:
    """Area under ROC on the held-out split"""
    predictions = model.transform(test)
    evaluator = BinaryClassificationEvaluator(
        labelCol=label_col,
        rawPredictionCol="rawPrediction",
        metricName="areaUnderROC",
    )
    return evaluator.evaluate(predictions)


def run_delay_model(
    df: DataFrame,
    features: Optional[List[str]] = None,
    train_fraction: float = 0.8,
    seed: int = 1099
) -> ModelReport:
    """Split, fit, evaluate, and summarize the delay model."""
    features = features or DEFAULT_FEATURES

    train, test = split_dataset(df, train_fraction, seed)
    train_rows = train.count()
    test_rows = test.count()
    logger.info(f"Training logistic regression on {train_rows:,} rows, testing on {test_rows:,}")

    model = train_delay_model(train, features)
    auc = evaluate_delay_model(model, test)

    lr_model = model.stages[-1]
    report = ModelReport(
        area_under_roc=auc,
        train_rows=train_rows,
        test_rows=test_rows,
        intercept=float(lr_model.intercept),
        coefficients=dict(zip(features, [float(c) for c in lr_model.coefficients])),
    )
    logger.info(f"✅ Delay model AUC={auc:.4f}")
    return report
