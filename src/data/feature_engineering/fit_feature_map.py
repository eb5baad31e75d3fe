"""Fit feature map from training data."""

import logging
from datetime import datetime
from typing import Optional

import pandas as pd

from contracts import FeatureMap
from src.core.reproducibility import compute_dict_hash
from src.data.tables import SourceTables
from .aggregate import CategoryOutcomeAggregator
from .base import (
    BaseFeatureEngineer,
    KEY_COL,
    LABEL_COL,
    category_relation,
    check_feature_map,
    check_output_columns,
)
from .expand import fit_vocabulary
from .quantile import QuantileBucketer
from .transform import FeatureTransformer


logger = logging.getLogger(__name__)


class FeatureMapFitter(BaseFeatureEngineer):
    """
    Fit feature map: per-category outcome counts and quantile buckets for
    bucketed variables, vocabularies for one-hot variables.

    Only labelled entities feed the bucket counts. The result is a new,
    fitted FeatureMap; the declared map passed in is left untouched.
    """

    def __init__(self, feature_map: FeatureMap, dataset_name: Optional[str] = None):
        super().__init__(feature_map)
        self.dataset_name = dataset_name
        self.fitted_map: Optional[FeatureMap] = None

    def fit(self, data: SourceTables) -> FeatureMap:
        """
        Fit on source tables; unlabelled (test) entities are ignored for buckets.

        Args:
            data: Source tables holding at least some labelled entities

        Returns:
            Fitted feature map
        """
        spec = self.feature_map
        check_feature_map(spec)
        data.validate(spec.outcome_classes)

        labels = data.labels().rename(columns={data.id_field: KEY_COL, data.label_field: LABEL_COL})
        aggregator = CategoryOutcomeAggregator(spec.outcome_classes)

        buckets = {}
        vocabularies = {}
        for feature in spec.features:
            relation = category_relation(data, feature)
            if feature.is_bucketed:
                counts = aggregator.aggregate(relation, labels, variable=feature.name)
                wide = aggregator.to_wide(counts)
                buckets[feature.name] = QuantileBucketer(feature.num_buckets).fit(wide, feature.name)
            else:
                vocabularies[feature.name] = fit_vocabulary(relation, feature.name)

        fitted = FeatureMap(
            name=spec.name,
            version=spec.version,
            id_field=spec.id_field,
            label_field=spec.label_field,
            outcome_classes=list(spec.outcome_classes),
            description=spec.description,
            features=list(spec.features),
            buckets=buckets,
            vocabularies=vocabularies,
            fitted_at=datetime.now().isoformat(timespec="seconds"),
            fitted_on=self.dataset_name,
            metadata=dict(spec.metadata),
        )
        check_output_columns(fitted)
        fitted.metadata["fingerprint"] = compute_dict_hash(fitted.fitted_state())
        fitted.metadata["n_labelled_entities"] = int(len(labels))
        logger.info(
            f"Fitted feature map '{fitted.name}' on {len(labels)} labelled entities, "
            f"{len(fitted.output_columns())} output columns, fingerprint {fitted.metadata['fingerprint'][:12]}"
        )
        self.fitted_map = fitted
        return fitted

    def transform(self, data: SourceTables) -> pd.DataFrame:
        """Transform data using the fitted feature map."""
        return FeatureTransformer(self.fitted_map).transform(data)
