# planner/cluster.py
# single-pass geo clustering: each seed absorbs every unassigned place within the threshold

from dataclasses import dataclass
from typing import List, Optional

from models import Place
from planner.geo import Coords, centroid, haversine_km

CLUSTER_DISTANCE_THRESHOLD_KM = 5.0


@dataclass
class Cluster:
    places: List[Place]
    centroid: Optional[Coords]

    @property
    def size(self) -> int:
        return len(self.places)


def cluster_places(places: List[Place], threshold_km: float = CLUSTER_DISTANCE_THRESHOLD_KM) -> List[Cluster]:
    """
    Group places in selection order. Distance is measured to the seed only
    (not to other members), so a chain of places 4km apart does not merge.
    O(n^2), fine for a few dozen selections.
    """
    taken = [False] * len(places)
    clusters: List[Cluster] = []
    for i, seed in enumerate(places):
        if taken[i]:
            continue
        taken[i] = True
        members = [seed]
        for j in range(i + 1, len(places)):
            if taken[j]:
                continue
            if haversine_km(seed.coords, places[j].coords) <= threshold_km:
                taken[j] = True
                members.append(places[j])
        clusters.append(Cluster(places=members, centroid=centroid(p.coords for p in members)))
    return clusters
