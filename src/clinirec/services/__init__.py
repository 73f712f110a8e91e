"""clinirec - Entity caches and cross-entity services."""

from clinirec.services.correlator import PatientRecordCorrelator
from clinirec.services.entity_cache import EntityCache
from clinirec.services.observation_cache import ObservationCache
from clinirec.services.patient_cache import PatientCache
from clinirec.services.practitioner_cache import PractitionerCache
from clinirec.services.user_cache import UserCache
from clinirec.services.visit_cache import VisitCache

__all__ = [
    "EntityCache",
    "ObservationCache",
    "PatientCache",
    "PatientRecordCorrelator",
    "PractitionerCache",
    "UserCache",
    "VisitCache",
]
