import re

from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.validators import require_text
from dental_clinic.domain.patients import Dentist

COLOR_RE = re.compile(r'^#[0-9a-fA-F]{6}$')


class DentistService:
    def __init__(self, dentist_repo=None):
        self.dentist_repo = dentist_repo or DentistRepository()

    def list_dentists(self):
        return self.dentist_repo.list_all()

    def get(self, dentist_id: int) -> Dentist:
        dentist = self.dentist_repo.get_by_id(dentist_id)
        if dentist is None:
            raise NotFoundError('Dentist not found')
        return dentist

    def save(self, data, dentist_id=None) -> Dentist:
        if dentist_id is not None:
            self.get(dentist_id)
        color = (data.get('color') or '').strip() or None
        if color and not COLOR_RE.match(color):
            raise ValueError('Color must look like #1a2b3c')
        dentist = Dentist(
            id=dentist_id,
            name=require_text(data.get('name'), 'Dentist name is required'),
            specialty=(data.get('specialty') or '').strip() or None,
            color=color,
        )
        if dentist_id is None:
            dentist.id = self.dentist_repo.create(dentist)
        else:
            self.dentist_repo.update(dentist)
        return dentist

    def delete(self, dentist_id: int) -> Dentist:
        dentist = self.get(dentist_id)
        self.dentist_repo.delete(dentist_id)
        return dentist
