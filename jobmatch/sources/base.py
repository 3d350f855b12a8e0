from abc import ABC, abstractmethod

from jobmatch.models import Result, SearchFilters, SearchPage


class JobSource(ABC):
    @abstractmethod
    def search(self, filters: SearchFilters) -> Result[SearchPage]:
        pass
