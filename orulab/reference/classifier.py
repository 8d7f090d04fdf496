from typing import Iterable, List

from orulab.commons.logger import logger
from orulab.parsers.models import ClassifiedObservation, Observation, ReferenceRange
from orulab.reference.index import ReferenceRangeIndex


def classify(observation: Observation, reference_range: ReferenceRange) -> ClassifiedObservation:
    # NaN bounds never flag
    is_abnormal = (
        observation.value < reference_range.lower or observation.value > reference_range.upper
    )
    return ClassifiedObservation(
        code=observation.code,
        value=observation.value,
        units=observation.units,
        is_abnormal=is_abnormal,
        range=reference_range.display,
    )


class Classifier:
    def __init__(self, index: ReferenceRangeIndex):
        self.index = index

    def classify_all(self, observations: Iterable[Observation]) -> List[ClassifiedObservation]:
        """Classify in order; observations without a reference row are left out."""
        out: List[ClassifiedObservation] = []
        for obs in observations:
            match = self.index.first_match(obs.code, obs.units)
            if match is None:
                logger.debug(f"No reference range for {obs.code} [{obs.units}]")
                continue
            out.append(classify(obs, match))
        return out
