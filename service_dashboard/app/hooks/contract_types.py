"""
Contract type hooks. The resource path is hyphenated on the server.
"""

from ..domain.models import ContractTypeRequest, UpdateContractTypeRequest
from .base import EntityHooks


class ContractTypeHooks(EntityHooks):
    entity = "contract_types"
    create_request = ContractTypeRequest
    update_request = UpdateContractTypeRequest
    resource = "contract-types"
