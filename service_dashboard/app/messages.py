"""
User-facing notification strings.

French is the product's primary language; English is provided for
deployments that set ``DASHBOARD_LOCALE=en``. Missing translations fall back
to French, then to the key itself.
"""

from typing import Dict, Optional

DEFAULT_LOCALE = "fr"

CATALOG: Dict[str, Dict[str, str]] = {
    "fr": {
        "error.title": "Erreur",
        "success.title": "Succès",
        "error.validation": "Données invalides",
        "employees.create.success.title": "✅ Employé créé avec succès",
        "employees.create.success": "{first_name} {last_name} a été ajouté à l'équipe",
        "employees.create.error": "Erreur lors de la création de l'employé",
        "employees.update.success": "Employé mis à jour avec succès",
        "employees.delete.success": "Employé supprimé avec succès",
        "projects.create.success.title": "✅ Projet créé avec succès",
        "projects.create.success": "Le projet \"{name}\" a été créé",
        "projects.create.error": "Erreur lors de la création du projet",
        "projects.update.success": "Projet mis à jour avec succès",
        "projects.delete.success": "Projet supprimé avec succès",
        "projects.assign.success": "Employé assigné au projet",
        "projects.assign.error": "Erreur lors de l'assignation",
        "projects.unassign.success": "Employé retiré du projet",
        "invoices.create.success.title": "✅ Facture créée avec succès",
        "invoices.create.success": "La facture a été créée",
        "invoices.create.error": "Erreur lors de la création de la facture",
        "invoices.update.success": "Facture mise à jour avec succès",
        "invoices.delete.success": "Facture supprimée avec succès",
        "departments.create.success": "Département créé avec succès",
        "departments.create.error": "Erreur lors de la création du département",
        "departments.update.success": "Département mis à jour avec succès",
        "departments.delete.success": "Département supprimé avec succès",
        "contract_types.create.success": "Type de contrat créé avec succès",
        "contract_types.create.error": "Erreur lors de la création du type de contrat",
        "contract_types.update.success": "Type de contrat mis à jour avec succès",
        "contract_types.delete.success": "Type de contrat supprimé avec succès",
        "users.create.success": "Utilisateur créé avec succès",
        "users.create.error": "Erreur lors de la création de l'utilisateur",
        "users.update.success": "Utilisateur mis à jour avec succès",
        "users.delete.success": "Utilisateur supprimé avec succès",
        "expenses.create.success.title": "✅ Dépense créée avec succès",
        "expenses.create.success": "La dépense a été enregistrée",
        "expenses.create.error": "Erreur lors de la création de la dépense",
        "expenses.update.success": "Dépense mise à jour avec succès",
        "expenses.delete.success": "Dépense supprimée avec succès",
        "expenses.approve.success": "Dépense approuvée avec succès",
        "expenses.approve.error": "Erreur lors de l'approbation",
        "expenses.reject.success": "Dépense rejetée",
        "expenses.reject.error": "Erreur lors du rejet",
        "expenses.bulk_delete.success": "{count} dépense(s) supprimée(s)",
        "expenses.bulk_delete.error": "Erreur lors de la suppression en lot",
        "update.error": "Erreur lors de la modification",
        "delete.error": "Erreur lors de la suppression",
    },
    "en": {
        "error.title": "Error",
        "success.title": "Success",
        "error.validation": "Invalid data",
        "employees.create.success.title": "✅ Employee created",
        "employees.create.success": "{first_name} {last_name} has joined the team",
        "employees.create.error": "Could not create the employee",
        "employees.update.success": "Employee updated",
        "employees.delete.success": "Employee deleted",
        "projects.create.success.title": "✅ Project created",
        "projects.create.success": "Project \"{name}\" has been created",
        "projects.create.error": "Could not create the project",
        "projects.update.success": "Project updated",
        "projects.delete.success": "Project deleted",
        "projects.assign.success": "Employee assigned to the project",
        "projects.assign.error": "Could not assign the employee",
        "projects.unassign.success": "Employee removed from the project",
        "invoices.create.success.title": "✅ Invoice created",
        "invoices.create.success": "The invoice has been created",
        "invoices.create.error": "Could not create the invoice",
        "invoices.update.success": "Invoice updated",
        "invoices.delete.success": "Invoice deleted",
        "departments.create.success": "Department created",
        "departments.create.error": "Could not create the department",
        "departments.update.success": "Department updated",
        "departments.delete.success": "Department deleted",
        "contract_types.create.success": "Contract type created",
        "contract_types.create.error": "Could not create the contract type",
        "contract_types.update.success": "Contract type updated",
        "contract_types.delete.success": "Contract type deleted",
        "users.create.success": "User created",
        "users.create.error": "Could not create the user",
        "users.update.success": "User updated",
        "users.delete.success": "User deleted",
        "expenses.create.success.title": "✅ Expense created",
        "expenses.create.success": "The expense has been recorded",
        "expenses.create.error": "Could not create the expense",
        "expenses.update.success": "Expense updated",
        "expenses.delete.success": "Expense deleted",
        "expenses.approve.success": "Expense approved",
        "expenses.approve.error": "Could not approve the expense",
        "expenses.reject.success": "Expense rejected",
        "expenses.reject.error": "Could not reject the expense",
        "expenses.bulk_delete.success": "{count} expense(s) deleted",
        "expenses.bulk_delete.error": "Could not delete the selected expenses",
        "update.error": "Could not save the changes",
        "delete.error": "Could not delete",
    },
}


def translate(key: str, locale: str = DEFAULT_LOCALE, **params) -> str:
    """Look up ``key`` for ``locale`` and format it with ``params``."""
    template = CATALOG.get(locale, {}).get(key) or CATALOG[DEFAULT_LOCALE].get(key) or key
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template


def lookup(key: str, locale: str = DEFAULT_LOCALE) -> Optional[str]:
    """Raw template for ``key``, or ``None`` when no catalog defines it."""
    return CATALOG.get(locale, {}).get(key) or CATALOG[DEFAULT_LOCALE].get(key)
