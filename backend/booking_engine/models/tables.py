from sqlalchemy import (
    Column,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no-show")
PAYMENT_STATUSES = ("pending", "paid", "refunded", "failed")
EMPLOYMENT_TYPES = ("salaried", "independent")
MODIFICATION_ACTIONS = (
    "created",
    "updated",
    "status_changed",
    "payment_received",
    "cancelled",
    "completed",
    "rescheduled",
)


class Providers(Base):
    __tablename__ = 'providers'

    id = Column(Integer, primary_key=True)
    user_id = Column(Text, nullable=False, unique=True)  # identity reference
    display_name = Column(Text, nullable=False)
    email = Column(Text)
    phone = Column(Text)
    employment_type = Column(
        Enum(*EMPLOYMENT_TYPES, name='employment_type'),
        nullable=False,
        server_default=text("'salaried'"),
    )
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    availability_rules = relationship('AvailabilityRules', back_populates='provider')
    blocked_intervals = relationship('BlockedIntervals', back_populates='provider')
    appointments = relationship('Appointments', back_populates='provider')


class Services(Base):
    __tablename__ = 'services'

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    duration_min = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    description = Column(Text)
    category = Column(Text)
    offers_consultation = Column(Integer, nullable=False, server_default=text('0'))
    consultation_duration_min = Column(Integer)

    appointments = relationship('Appointments', back_populates='service')


t_provider_services = Table(
    'provider_services', metadata,
    Column('provider_id', ForeignKey('providers.id', ondelete='CASCADE'), nullable=False),
    Column('service_id', ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
    Column('is_active', Integer, nullable=False, server_default=text('1')),
    Column('notes', Text),
    UniqueConstraint('provider_id', 'service_id')
)


class AvailabilityRules(Base):
    __tablename__ = 'availability_rules'
    __table_args__ = (
        Index('ix_availability_rules_provider_day', 'provider_id', 'day_of_week'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'))  # NULL = all services
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday, 6 = Sunday
    start_time = Column(Text, nullable=False)  # "HH:MM"
    end_time = Column(Text, nullable=False)
    is_available = Column(Integer, nullable=False, server_default=text('1'))
    start_date = Column(Text)  # "YYYY-MM-DD", inclusive
    end_date = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    provider = relationship('Providers', back_populates='availability_rules')


class BlockedIntervals(Base):
    __tablename__ = 'blocked_intervals'
    __table_args__ = (
        Index('ix_blocked_intervals_provider_date', 'provider_id', 'date'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'))  # NULL = all services
    date = Column(Text, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text)  # NULL = one slot of the evaluated service
    reason = Column(Text)
    created_by = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    provider = relationship('Providers', back_populates='blocked_intervals')


class Appointments(Base):
    __tablename__ = 'appointments'
    __table_args__ = (
        Index('ix_appointments_provider_date', 'provider_id', 'date'),
        # Storage-level backstop for identical start times
        Index(
            'uq_appointments_active_start',
            'provider_id', 'date', 'time',
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(ForeignKey('providers.id'), nullable=False)
    service_id = Column(ForeignKey('services.id'), nullable=False)

    client_name = Column(Text, nullable=False)
    client_email = Column(Text)
    client_phone = Column(Text)

    date = Column(Text, nullable=False)  # "YYYY-MM-DD"
    time = Column(Text, nullable=False)  # "HH:MM"
    duration_minutes = Column(Integer, nullable=False)
    is_consultation = Column(Integer, nullable=False, server_default=text('0'))

    status = Column(
        Enum(*APPOINTMENT_STATUSES, name='appointment_status'),
        nullable=False,
        server_default=text("'pending'"),
    )
    notes = Column(Text)
    cancel_reason = Column(Text)

    # Payment sub-state
    requires_deposit = Column(Integer, nullable=False, server_default=text('1'))
    deposit_amount = Column(Float, nullable=False, server_default=text('0'))
    deposit_paid = Column(Integer, nullable=False, server_default=text('0'))
    payment_intent_id = Column(Text)
    payment_status = Column(
        Enum(*PAYMENT_STATUSES, name='payment_status'),
        nullable=False,
        server_default=text("'pending'"),
    )
    payment_discrepancy = Column(Text)

    # Final settlement
    final_payment_amount = Column(Float)
    final_payment_method = Column(Text)
    final_payment_received_at = Column(Text)
    final_payment_received_by = Column(Text)
    final_payment_received_by_name = Column(Text)
    payment_notes = Column(Text)

    # Actor stamps
    created_by_user_id = Column(Text)
    created_by_name = Column(Text)
    created_by_role = Column(Text)
    completed_by = Column(Text)
    completed_by_name = Column(Text)
    completed_by_role = Column(Text)
    no_show_by = Column(Text)
    no_show_by_name = Column(Text)

    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    cancelled_at = Column(Text)
    completed_at = Column(Text)
    no_show_at = Column(Text)

    provider = relationship('Providers', back_populates='appointments')
    service = relationship('Services', back_populates='appointments')
    line_items = relationship(
        'AppointmentLineItems',
        back_populates='appointment',
        order_by='AppointmentLineItems.position',
        passive_deletes=True,
    )
    modifications = relationship(
        'AppointmentModifications',
        back_populates='appointment',
        order_by='AppointmentModifications.seq',
        passive_deletes=True,
    )


class AppointmentLineItems(Base):
    __tablename__ = 'appointment_line_items'

    id = Column(Text, primary_key=True)
    appointment_id = Column(
        ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='SET NULL'))
    name = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    added_at = Column(Text, nullable=False)
    added_by = Column(Text)

    appointment = relationship('Appointments', back_populates='line_items')


class AppointmentModifications(Base):
    __tablename__ = 'appointment_modifications'
    __table_args__ = (
        UniqueConstraint('appointment_id', 'seq'),
    )

    id = Column(Integer, primary_key=True)
    appointment_id = Column(
        ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False, index=True
    )
    seq = Column(Integer, nullable=False)
    timestamp = Column(Text, nullable=False)
    actor_id = Column(Text, nullable=False)
    actor_name = Column(Text, nullable=False)
    actor_role = Column(Text, nullable=False)
    action = Column(Enum(*MODIFICATION_ACTIONS, name='modification_action'), nullable=False)
    field = Column(Text)
    old_value = Column(Text)
    new_value = Column(Text)
    description = Column(Text, nullable=False)

    appointment = relationship('Appointments', back_populates='modifications')


# History rows and line items are never rewritten; line items may only be
# removed, history rows only go away with the appointment purge (DB cascade).

@event.listens_for(AppointmentModifications, "before_update")
def _reject_modification_update(mapper, connection, target):
    raise ValueError("appointment_modifications is append-only")


@event.listens_for(AppointmentModifications, "before_delete")
def _reject_modification_delete(mapper, connection, target):
    raise ValueError("appointment_modifications is append-only")


@event.listens_for(AppointmentLineItems, "before_update")
def _reject_line_item_update(mapper, connection, target):
    raise ValueError("line items are append/remove only")
