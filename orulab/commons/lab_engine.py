from typing import Dict, Iterable, List, Union

from orulab.parsers.message import Segment, parse_message
from orulab.parsers.models import ClassifiedObservation, Observation
from orulab.parsers.observations import extract_observations
from orulab.reference.classifier import Classifier
from orulab.reference.index import ReferenceRangeIndex


class LabEngine:
    """Facade over parse -> extract -> classify for one ORU message.

    Stateless per call; the only shared state is the injected index.
    """

    def __init__(self, index: ReferenceRangeIndex):
        self.index = index
        self.classifier = Classifier(index)

    def parse(self, hl7_text: Union[str, bytes]) -> List[Segment]:
        return parse_message(hl7_text)

    def extract(self, segments: Iterable[Segment]) -> List[Observation]:
        return extract_observations(segments)

    def classify(self, hl7_text: Union[str, bytes]) -> List[ClassifiedObservation]:
        """Raises ParseError for empty input; bad OBX rows are simply left out."""
        observations = self.extract(self.parse(hl7_text))
        return self.classifier.classify_all(observations)

    def to_payload(self, results: Iterable[ClassifiedObservation]) -> Dict:
        return {"results": [r.to_dict() for r in results]}
