"""create directory tables

Revision ID: 1a6d0c3e5b72
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1a6d0c3e5b72'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DATABASE_ROLES = [
    (1, 'Owner'),
    (2, 'SecurityAdmin'),
    (3, 'AccessAdmin'),
    (4, 'BackupOperator'),
    (5, 'DdlAdmin'),
    (6, 'DataWriter'),
    (7, 'DataReader'),
    (8, 'DenyDataWriter'),
    (9, 'DenyDataReader'),
]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False, comment='Tenant id'),
        sa.Column('name', sa.String(length=50), nullable=False, comment='Tenant name, unique'),
        sa.Column('code', sa.String(length=10), nullable=True, comment='Short tenant code, unique when set'),
        sa.Column('status', sa.SmallInteger(), nullable=False, comment='Tenant status (active, inactive)'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_tenants'),
        sa.UniqueConstraint('name', name='uq_tenants_name'),
        sa.UniqueConstraint('code', name='uq_tenants_code'),
    )
    op.create_table(
        'database_servers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False, comment='Logical server name, unique'),
        sa.Column('host_name', sa.String(length=50), nullable=True, comment='Host name'),
        sa.Column('fully_qualified_domain_name', sa.String(length=100), nullable=True, comment='Fully qualified domain name'),
        sa.Column('ip_address', sa.String(length=15), nullable=True, comment='IPv4 address'),
        sa.Column('is_linked_server', sa.Boolean(), nullable=False, comment='Commands are forwarded with exec(...) at [host]'),
        sa.Column('status', sa.SmallInteger(), nullable=False, comment='Server status (active, inactive)'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_database_servers'),
        sa.UniqueConstraint('name', name='uq_database_servers_name'),
        sa.UniqueConstraint('host_name', name='uq_database_servers_host_name'),
        sa.UniqueConstraint('fully_qualified_domain_name', name='uq_database_servers_fully_qualified_domain_name'),
        sa.UniqueConstraint('ip_address', name='uq_database_servers_ip_address'),
    )
    op.create_table(
        'database_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=20), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_database_types'),
        sa.UniqueConstraint('name', name='uq_database_types_name'),
    )
    op.create_table(
        'databases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False, comment='Physical catalog name'),
        sa.Column('server_id', sa.Integer(), nullable=False),
        sa.Column('database_type_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.SmallInteger(), nullable=False, comment='Database status (active, inactive)'),
        sa.Column('use_trusted_connection', sa.Boolean(), nullable=False, comment='Integrated security instead of a database user'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['server_id'], ['database_servers.id'], name='fk_databases_server_id_database_servers'),
        sa.ForeignKeyConstraint(['database_type_id'], ['database_types.id'], name='fk_databases_database_type_id_database_types'),
        sa.PrimaryKeyConstraint('id', name='pk_databases'),
        sa.UniqueConstraint('server_id', 'name', name='uq_databases_server_id_name'),
    )
    op.create_index('ix_databases_server_id', 'databases', ['server_id'])
    op.create_index('ix_databases_database_type_id', 'databases', ['database_type_id'])

    op.create_table(
        'connections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('database_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_connections_tenant_id_tenants'),
        sa.ForeignKeyConstraint(['database_id'], ['databases.id'], name='fk_connections_database_id_databases'),
        sa.PrimaryKeyConstraint('id', name='pk_connections'),
        sa.UniqueConstraint('tenant_id', 'database_id', name='uq_connections_tenant_id_database_id'),
    )
    op.create_index('ix_connections_tenant_id', 'connections', ['tenant_id'])
    op.create_index('ix_connections_database_id', 'connections', ['database_id'])

    roles_table = op.create_table(
        'database_roles',
        sa.Column('id', sa.SmallInteger(), autoincrement=False, nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_database_roles'),
        sa.UniqueConstraint('name', name='uq_database_roles_name'),
    )
    op.create_table(
        'database_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_name', sa.String(length=50), nullable=False, comment='Login and database user name, unique system-wide'),
        sa.Column('password', sa.String(length=255), nullable=False, comment='Password, encrypted when an encryption key is configured'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_database_users'),
        sa.UniqueConstraint('user_name', name='uq_database_users_user_name'),
    )
    op.create_table(
        'database_user_databases',
        sa.Column('database_user_id', sa.Integer(), nullable=False),
        sa.Column('database_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['database_user_id'], ['database_users.id'], ondelete='CASCADE',
                                name='fk_database_user_databases_database_user_id_database_users'),
        sa.ForeignKeyConstraint(['database_id'], ['databases.id'],
                                name='fk_database_user_databases_database_id_databases'),
        sa.PrimaryKeyConstraint('database_user_id', 'database_id', name='pk_database_user_databases'),
    )
    op.create_table(
        'database_user_roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('database_user_id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.SmallInteger(), nullable=False),
        sa.ForeignKeyConstraint(['database_user_id'], ['database_users.id'], ondelete='CASCADE',
                                name='fk_database_user_roles_database_user_id_database_users'),
        sa.ForeignKeyConstraint(['role_id'], ['database_roles.id'], name='fk_database_user_roles_role_id_database_roles'),
        sa.PrimaryKeyConstraint('id', name='pk_database_user_roles'),
        sa.UniqueConstraint('database_user_id', 'role_id', name='uq_database_user_roles_user_role'),
    )
    op.create_index('ix_database_user_roles_database_user_id', 'database_user_roles', ['database_user_id'])

    op.create_table(
        'provisioning_steps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('database_user_id', sa.Integer(), nullable=False),
        sa.Column('step', sa.String(length=30), nullable=False),
        sa.Column('target', sa.String(length=30), nullable=False),
        sa.Column('completed_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['database_user_id'], ['database_users.id'], ondelete='CASCADE',
                                name='fk_provisioning_steps_database_user_id_database_users'),
        sa.PrimaryKeyConstraint('id', name='pk_provisioning_steps'),
        sa.UniqueConstraint('database_user_id', 'step', 'target', name='uq_provisioning_steps_user_step_target'),
    )
    op.create_index('ix_provisioning_steps_database_user_id', 'provisioning_steps', ['database_user_id'])

    # Ordinals must match dblocator.models.DatabaseRole
    op.bulk_insert(roles_table, [{'id': role_id, 'name': name} for role_id, name in DATABASE_ROLES])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_provisioning_steps_database_user_id', table_name='provisioning_steps')
    op.drop_table('provisioning_steps')
    op.drop_index('ix_database_user_roles_database_user_id', table_name='database_user_roles')
    op.drop_table('database_user_roles')
    op.drop_table('database_user_databases')
    op.drop_table('database_users')
    op.drop_table('database_roles')
    op.drop_index('ix_connections_database_id', table_name='connections')
    op.drop_index('ix_connections_tenant_id', table_name='connections')
    op.drop_table('connections')
    op.drop_index('ix_databases_database_type_id', table_name='databases')
    op.drop_index('ix_databases_server_id', table_name='databases')
    op.drop_table('databases')
    op.drop_table('database_types')
    op.drop_table('database_servers')
    op.drop_table('tenants')
