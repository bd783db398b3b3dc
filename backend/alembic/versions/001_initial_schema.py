"""Initial schema

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=True),
    ]


def _listing_columns(published_default: str):
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=published_default),
        sa.Column('primary_image_id', sa.Integer(), nullable=True),
        *_timestamps(),
    ]


def _listing_constraints():
    return [
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['primary_image_id'], ['files.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    ]


def _gallery_table(name: str, listing_table: str, listing_column: str, unique_name: str):
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(listing_column, sa.Integer(), nullable=False),
        sa.Column('file_id', sa.Integer(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint([listing_column], [f'{listing_table}.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['file_id'], ['files.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(listing_column, 'file_id', name=unique_name),
    )
    op.create_index(f'ix_{name}_{listing_column}', name, [listing_column])


def upgrade() -> None:
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=True),
        sa.Column('is_company', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_verified_company', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('company_name', sa.String(100), nullable=True),
        sa.Column('company_description', sa.Text(), nullable=True),
        sa.Column('phone_number', sa.String(50), nullable=True),
        sa.Column('logo_file_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'files',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('original_name', sa.String(255), nullable=False),
        sa.Column('storage_path', sa.String(500), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(20), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('storage_path'),
    )
    op.create_index('ix_files_user_id', 'files', ['user_id'])
    op.create_index('ix_files_entity', 'files', ['entity_type', 'entity_id'])

    op.create_table(
        'houses',
        *_listing_columns('0'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('number_of_bedrooms', sa.Integer(), nullable=True),
        sa.Column('number_of_bathrooms', sa.Integer(), nullable=True),
        sa.Column('square_footage', sa.Integer(), nullable=True),
        *_listing_constraints(),
    )
    op.create_index('ix_houses_user_id', 'houses', ['user_id'])

    op.create_table(
        'cars',
        *_listing_columns('0'),
        sa.Column('make', sa.String(50), nullable=False),
        sa.Column('model', sa.String(50), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('mileage', sa.Integer(), nullable=True),
        sa.Column('fuel_type', sa.String(50), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_listing_constraints(),
    )
    op.create_index('ix_cars_user_id', 'cars', ['user_id'])

    op.create_table(
        'items',
        *_listing_columns('0'),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        *_listing_constraints(),
        sa.UniqueConstraint('name', 'user_id', name='items_name_user_id_key'),
    )
    op.create_index('ix_items_user_id', 'items', ['user_id'])

    op.create_table(
        'jobs',
        *_listing_columns('1'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('company', sa.String(255), nullable=False),
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('job_type', sa.String(50), nullable=False, server_default='full-time'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('salary', sa.String(100), nullable=True),
        sa.Column('experience_required', sa.String(50), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('is_remote', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('application_type', sa.String(10), nullable=False, server_default='native'),
        sa.Column('external_application_url', sa.Text(), nullable=True),
        *_listing_constraints(),
    )
    op.create_index('ix_jobs_user_id', 'jobs', ['user_id'])

    _gallery_table('house_images', 'houses', 'house_id', 'uq_house_image')
    _gallery_table('car_images', 'cars', 'car_id', 'uq_car_image')
    _gallery_table('item_images', 'items', 'item_id', 'uq_item_image')

    op.create_table(
        'company_verification_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('company_name', sa.String(100), nullable=False),
        sa.Column('company_description', sa.Text(), nullable=True),
        sa.Column('business_license_number', sa.String(100), nullable=True),
        sa.Column('contact_email', sa.String(100), nullable=True),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_company_verification_requests_user_id', 'company_verification_requests', ['user_id'])
    op.create_index('ix_company_verification_requests_status', 'company_verification_requests', ['status'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('participant1_id', sa.Integer(), nullable=False),
        sa.Column('participant2_id', sa.Integer(), nullable=False),
        sa.Column('subject', sa.String(255), nullable=True),
        sa.Column('listing_type', sa.String(50), nullable=True),
        sa.Column('listing_id', sa.Integer(), nullable=True),
        sa.Column('listing_details', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['participant1_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['participant2_id'], ['users.id'], ondelete='CASCADE'),
        sa.CheckConstraint('participant1_id <> participant2_id', name='ck_conversation_distinct_participants'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_conversations_participant1_id', 'conversations', ['participant1_id'])
    op.create_index('ix_conversations_participant2_id', 'conversations', ['participant2_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('conversation_id', sa.Integer(), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_conversation_id', 'messages', ['conversation_id'])
    op.create_index('ix_messages_recipient_id', 'messages', ['recipient_id'])

    op.create_table(
        'job_applications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('cover_letter', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('availability', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('job_id', 'user_id', name='uq_job_application_user'),
    )
    op.create_index('ix_job_applications_job_id', 'job_applications', ['job_id'])
    op.create_index('ix_job_applications_user_id', 'job_applications', ['user_id'])

    op.create_table(
        'job_custom_questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('question_type', sa.String(20), nullable=False),
        sa.Column('options', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_job_custom_questions_job_id', 'job_custom_questions', ['job_id'])

    op.create_table(
        'job_application_custom_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['application_id'], ['job_applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['job_custom_questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('application_id', 'question_id', name='uq_application_question'),
    )
    op.create_index(
        'ix_job_application_custom_answers_application_id',
        'job_application_custom_answers',
        ['application_id'],
    )

    op.create_table(
        'sessions',
        sa.Column('sid', sa.String(64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('data', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('sid'),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])
    op.create_index('ix_sessions_expires_at', 'sessions', ['expires_at'])


def downgrade() -> None:
    op.drop_table('sessions')
    op.drop_table('job_application_custom_answers')
    op.drop_table('job_custom_questions')
    op.drop_table('job_applications')
    op.drop_table('messages')
    op.drop_table('conversations')
    op.drop_table('company_verification_requests')
    op.drop_table('item_images')
    op.drop_table('car_images')
    op.drop_table('house_images')
    op.drop_table('jobs')
    op.drop_table('items')
    op.drop_table('cars')
    op.drop_table('houses')
    op.drop_table('files')
    op.drop_table('users')
    op.drop_table('roles')
