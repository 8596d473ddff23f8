"""Built-in permission catalogue: permissions, roles, inheritance and sets."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PermissionDefinition:
    """A seeded permission pattern."""

    pattern: str
    description: str


@dataclass(frozen=True)
class RoleDefinition:
    """A seeded role and the patterns it grants."""

    code: str
    name: str
    level: int
    description: str
    is_system: bool
    permissions: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PermissionSetDefinition:
    """A named bundle of patterns for admin tooling."""

    name: str
    description: str
    permissions: tuple[str, ...] = field(default_factory=tuple)


PERMISSION_DEFINITIONS: tuple[PermissionDefinition, ...] = (
    # Platform administration
    PermissionDefinition("platform.*.global", "Full platform control"),
    PermissionDefinition("tenants.*.global", "Full tenant management"),
    PermissionDefinition("system.*.global", "System operations (backup, restore, monitoring)"),
    PermissionDefinition("emergency.access.global", "Emergency break-glass access"),
    PermissionDefinition("audit.*.global", "Full audit access"),
    PermissionDefinition("config.*.global", "All configuration management"),
    PermissionDefinition("integrations.*.global", "All integrations"),
    PermissionDefinition("subscriptions.*.global", "Subscription templates"),
    PermissionDefinition("security.*.global", "Security policies"),
    PermissionDefinition("compliance.*.global", "Compliance rules"),
    PermissionDefinition("users.*.global", "Full user management across tenants"),
    PermissionDefinition("accounts.*.global", "Full account management"),
    PermissionDefinition("impersonate.*.global", "Impersonate any user/account"),
    PermissionDefinition("analytics.*.global", "Platform-wide analytics"),
    PermissionDefinition("reports.*.global", "All reporting capabilities"),
    PermissionDefinition("saved_searches.*.global", "Manage saved searches on every tenant"),
    # Tenant administration
    PermissionDefinition("tenant.manage.tenant", "Tenant settings, branding, domains"),
    PermissionDefinition("accounts.*.tenant", "Full account management within tenant"),
    PermissionDefinition("users.*.tenant", "Full user management within tenant"),
    PermissionDefinition("analytics.read.tenant", "Tenant analytics access"),
    PermissionDefinition("billing.manage.tenant", "Tenant billing management"),
    PermissionDefinition("content.*.tenant", "All content types (profiles, jobs, media)"),
    PermissionDefinition("moderation.*.tenant", "All moderation capabilities"),
    PermissionDefinition("categories.manage.tenant", "Categories and tags"),
    PermissionDefinition("schemas.manage.tenant", "Model schemas and forms"),
    PermissionDefinition("templates.manage.tenant", "Email and page templates"),
    PermissionDefinition("marketplace.*.tenant", "Full marketplace control"),
    PermissionDefinition("bookings.*.tenant", "All booking operations"),
    PermissionDefinition("payments.*.tenant", "Payment and commission management"),
    PermissionDefinition("disputes.*.tenant", "Dispute resolution"),
    PermissionDefinition("reviews.*.tenant", "Review management"),
    PermissionDefinition("config.manage.tenant", "Tenant configuration"),
    PermissionDefinition("workflows.*.tenant", "Workflow management"),
    PermissionDefinition("integrations.*.tenant", "Integration management"),
    PermissionDefinition("subscriptions.*.tenant", "Subscription plans"),
    PermissionDefinition("compliance.*.tenant", "Compliance settings"),
    PermissionDefinition("support.*.tenant", "Support operations"),
    PermissionDefinition("impersonate.users.tenant", "Impersonate tenant users"),
    PermissionDefinition("audit.read.tenant", "Audit log access"),
    PermissionDefinition("reports.*.tenant", "Reporting capabilities"),
    PermissionDefinition("export.*.tenant", "Data export"),
    PermissionDefinition("saved_searches.*.tenant", "Manage tenant saved searches"),
    # Account owners
    PermissionDefinition("account.manage.own", "Full account control"),
    PermissionDefinition("team.*.own", "Team management"),
    PermissionDefinition("billing.manage.own", "Billing and subscriptions"),
    PermissionDefinition("analytics.read.own", "Account analytics"),
    PermissionDefinition("settings.manage.own", "Account settings"),
    PermissionDefinition("profiles.*.own", "Full profile management"),
    PermissionDefinition("media.*.own", "Media management"),
    PermissionDefinition("portfolio.*.own", "Portfolio management"),
    PermissionDefinition("availability.*.own", "Availability and rates"),
    PermissionDefinition("compliance.manage.own", "Compliance and verification"),
    PermissionDefinition("jobs.*.own", "Job posting and management"),
    PermissionDefinition("applications.*.own", "Application management"),
    PermissionDefinition("bookings.*.own", "Booking management"),
    PermissionDefinition("clients.*.own", "Client management"),
    PermissionDefinition("contracts.*.own", "Contract management"),
    PermissionDefinition("payments.*.own", "Payment processing"),
    PermissionDefinition("invoices.*.own", "Invoice management"),
    PermissionDefinition("commissions.read.own", "Commission tracking"),
    PermissionDefinition("reports.generate.own", "Report generation"),
    PermissionDefinition("export.data.own", "Data export"),
    PermissionDefinition("saved_searches.*.own", "Manage own saved searches"),
    # Individuals
    PermissionDefinition("profile.*.own", "Profile management"),
    PermissionDefinition("jobs.read.tenant", "Browse jobs"),
    PermissionDefinition("bookings.manage.own", "Accept/decline bookings"),
    PermissionDefinition("reviews.manage.own", "Respond to reviews"),
    PermissionDefinition("messages.*.own", "Messaging"),
    PermissionDefinition("billing.read.own", "View billing"),
    PermissionDefinition("payments.read.own", "View payments"),
    PermissionDefinition("contracts.manage.own", "Sign contracts"),
    PermissionDefinition("disputes.create.own", "File disputes"),
    # Parents and guardians
    PermissionDefinition("children.*.own", "Full child management"),
    PermissionDefinition("safety.*.own", "Safety controls"),
    PermissionDefinition("profiles.supervise.own", "Supervise child profiles"),
    PermissionDefinition("applications.approve.own", "Approve applications"),
    PermissionDefinition("bookings.approve.own", "Approve bookings"),
    PermissionDefinition("media.approve.own", "Approve media uploads"),
    PermissionDefinition("contracts.approve.own", "Approve contracts"),
    PermissionDefinition("earnings.manage.own", "Manage child earnings"),
    PermissionDefinition("education.manage.own", "Education accounts"),
    PermissionDefinition("legal.manage.own", "Legal documentation"),
    PermissionDefinition("insurance.manage.own", "Insurance management"),
    PermissionDefinition("taxes.manage.own", "Tax management"),
    PermissionDefinition("activity.monitor.own", "Monitor all child activity"),
    PermissionDefinition("communications.*.own", "Monitor/manage communications"),
    # Team members and clients
    PermissionDefinition("assigned.*.own", "Manage assigned work"),
    PermissionDefinition("team.collaborate.team", "Team collaboration"),
    PermissionDefinition("files.*.team", "Team file access"),
    PermissionDefinition("communication.*.team", "Team communication"),
    PermissionDefinition("calendar.read.team", "View team calendar"),
    PermissionDefinition("reports.read.own", "View own reports"),
    PermissionDefinition("talents.search.tenant", "Search talent"),
    PermissionDefinition("talents.contact.own", "Contact talent"),
    PermissionDefinition("reviews.create.own", "Leave reviews"),
    # Moderation
    PermissionDefinition("content.read.tenant", "Read all content"),
    PermissionDefinition("flags.manage.tenant", "Manage flagged content"),
    PermissionDefinition("escalation.create.tenant", "Escalate issues"),
    PermissionDefinition("guidelines.enforce.tenant", "Enforce guidelines"),
    PermissionDefinition("reports.create.tenant", "Create moderation reports"),
    PermissionDefinition("training.access.own", "Access training materials"),
    PermissionDefinition("tools.moderate.tenant", "Use moderation tools"),
)


# Some role entries reference patterns that are not in the catalogue
# (e.g. "emergency.*.own"); seeding skips and reports them.
ROLE_DEFINITIONS: tuple[RoleDefinition, ...] = (
    RoleDefinition(
        code="super_admin",
        name="Super Admin",
        level=5,
        description="Platform-wide administrator with full access",
        is_system=True,
        permissions=(
            "platform.*.global",
            "tenants.*.global",
            "system.*.global",
            "emergency.access.global",
            "audit.*.global",
            "config.*.global",
            "integrations.*.global",
            "subscriptions.*.global",
            "security.*.global",
            "compliance.*.global",
            "users.*.global",
            "accounts.*.global",
            "impersonate.*.global",
            "analytics.*.global",
            "reports.*.global",
            "saved_searches.*.global",
        ),
    ),
    RoleDefinition(
        code="tenant_admin",
        name="Tenant Admin",
        level=4,
        description="Marketplace owner with full tenant access",
        is_system=True,
        permissions=(
            "tenant.manage.tenant",
            "accounts.*.tenant",
            "users.*.tenant",
            "analytics.read.tenant",
            "billing.manage.tenant",
            "content.*.tenant",
            "moderation.*.tenant",
            "categories.manage.tenant",
            "schemas.manage.tenant",
            "templates.manage.tenant",
            "marketplace.*.tenant",
            "bookings.*.tenant",
            "payments.*.tenant",
            "disputes.*.tenant",
            "reviews.*.tenant",
            "config.manage.tenant",
            "workflows.*.tenant",
            "integrations.*.tenant",
            "subscriptions.*.tenant",
            "compliance.*.tenant",
            "support.*.tenant",
            "impersonate.users.tenant",
            "audit.read.tenant",
            "reports.*.tenant",
            "export.*.tenant",
            "saved_searches.*.tenant",
        ),
    ),
    RoleDefinition(
        code="content_moderator",
        name="Content Moderator",
        level=3,
        description="Content review and moderation specialist",
        is_system=True,
        permissions=(
            "moderation.*.tenant",
            "content.read.tenant",
            "flags.manage.tenant",
            "escalation.create.tenant",
            "guidelines.enforce.tenant",
            "reports.create.tenant",
            "training.access.own",
            "tools.moderate.tenant",
        ),
    ),
    RoleDefinition(
        code="agency_owner",
        name="Agency Owner",
        level=2,
        description="Agency account owner with full management",
        is_system=False,
        permissions=(
            "account.manage.own",
            "team.*.own",
            "billing.manage.own",
            "analytics.read.own",
            "settings.manage.own",
            "profiles.*.own",
            "media.*.own",
            "portfolio.*.own",
            "availability.*.own",
            "compliance.manage.own",
            "jobs.*.own",
            "applications.*.own",
            "bookings.*.own",
            "clients.*.own",
            "contracts.*.own",
            "payments.*.own",
            "invoices.*.own",
            "commissions.read.own",
            "reports.generate.own",
            "export.data.own",
            "saved_searches.*.own",
        ),
    ),
    RoleDefinition(
        code="individual_owner",
        name="Individual Owner",
        level=2,
        description="Individual account owner",
        is_system=False,
        permissions=(
            "account.manage.own",
            "profile.*.own",
            "media.*.own",
            "portfolio.*.own",
            "availability.*.own",
            "jobs.read.tenant",
            "applications.*.own",
            "bookings.manage.own",
            "reviews.manage.own",
            "messages.*.own",
            "billing.read.own",
            "payments.read.own",
            "analytics.read.own",
            "contracts.manage.own",
            "disputes.create.own",
            "saved_searches.*.own",
        ),
    ),
    RoleDefinition(
        code="parent_guardian",
        name="Parent Guardian",
        level=2,
        description="Parent or guardian with supervision rights",
        is_system=False,
        permissions=(
            "account.manage.own",
            "children.*.own",
            "safety.*.own",
            "compliance.*.own",
            "emergency.*.own",
            "profiles.supervise.own",
            "applications.approve.own",
            "bookings.approve.own",
            "media.approve.own",
            "contracts.approve.own",
            "earnings.manage.own",
            "education.manage.own",
            "legal.manage.own",
            "insurance.manage.own",
            "taxes.manage.own",
            "activity.monitor.own",
            "communications.*.own",
            "reports.*.own",
        ),
    ),
    RoleDefinition(
        code="team_member",
        name="Team Member",
        level=1,
        description="Team member with collaborative access",
        is_system=False,
        permissions=(
            "assigned.*.own",
            "team.collaborate.team",
            "files.*.team",
            "communication.*.team",
            "calendar.read.team",
            "reports.read.own",
            "saved_searches.*.own",
        ),
    ),
    RoleDefinition(
        code="job_poster",
        name="Job Poster",
        level=1,
        description="Client who posts jobs and hires talent",
        is_system=False,
        permissions=(
            "jobs.*.own",
            "applications.review.own",
            "bookings.create.own",
            "talents.search.tenant",
            "talents.contact.own",
            "payments.create.own",
            "reviews.create.own",
            "analytics.read.own",
            "saved_searches.*.own",
        ),
    ),
)


INHERITANCE_RULES: dict[str, tuple[str, ...]] = {
    "platform.*.global": ("tenant.*.tenant", "account.*.own"),
    "tenants.*.global": ("tenant.manage.tenant",),
    "content.*.tenant": (
        "profiles.*.tenant",
        "jobs.*.tenant",
        "media.*.tenant",
        "reviews.*.tenant",
    ),
    "marketplace.*.tenant": (
        "bookings.*.tenant",
        "payments.*.tenant",
        "disputes.*.tenant",
    ),
    "account.manage.own": (
        "billing.manage.own",
        "settings.manage.own",
        "analytics.read.own",
    ),
    "profiles.*.own": (
        "profile.*.own",
        "media.*.own",
        "portfolio.*.own",
    ),
}


PERMISSION_SETS: tuple[PermissionSetDefinition, ...] = (
    PermissionSetDefinition(
        name="platform_administration",
        description="Complete platform administration",
        permissions=(
            "platform.*.global",
            "tenants.*.global",
            "system.*.global",
            "emergency.access.global",
        ),
    ),
    PermissionSetDefinition(
        name="tenant_administration",
        description="Complete tenant administration",
        permissions=(
            "tenant.manage.tenant",
            "content.*.tenant",
            "marketplace.*.tenant",
            "config.manage.tenant",
        ),
    ),
    PermissionSetDefinition(
        name="content_moderation",
        description="Content moderation capabilities",
        permissions=(
            "moderation.*.tenant",
            "content.read.tenant",
            "flags.manage.tenant",
        ),
    ),
    PermissionSetDefinition(
        name="financial_management",
        description="Financial and billing management",
        permissions=(
            "billing.*.own",
            "payments.*.own",
            "invoices.*.own",
            "commissions.read.own",
        ),
    ),
    PermissionSetDefinition(
        name="talent_management",
        description="Talent and profile management",
        permissions=(
            "profiles.*.own",
            "media.*.own",
            "portfolio.*.own",
            "availability.*.own",
        ),
    ),
)


def get_role_definition(code: str) -> RoleDefinition | None:
    """Look up a built-in role by code."""
    for role in ROLE_DEFINITIONS:
        if role.code == code:
            return role
    return None
