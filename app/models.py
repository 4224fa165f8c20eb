from app import db


class Booking(db.Model):
    __tablename__ = 'bookings'
    id             = db.Column(db.Integer, primary_key=True)
    customer_name  = db.Column(db.String(200), nullable=False)
    customer_phone = db.Column(db.String(50))
    customer_email = db.Column(db.String(200))
    service        = db.Column(db.String(200))
    booking_date   = db.Column(db.String(10))    # YYYY-MM-DD
    booking_time   = db.Column(db.String(5))     # HH:MM
    duration       = db.Column(db.Integer, default=60)
    car            = db.Column(db.String(200))
    status         = db.Column(db.String(32), nullable=False, default='pending')
    cost           = db.Column(db.Float)
    technician_id  = db.Column(db.Integer)
    service_id     = db.Column(db.Integer)
    bay_id         = db.Column(db.Integer)
    notes          = db.Column(db.Text)


class Job(db.Model):
    """Technician-facing copy of a booking."""
    __tablename__ = 'jobs'
    id            = db.Column(db.Integer, primary_key=True)
    booking_id    = db.Column(db.Integer, nullable=True)
    customer      = db.Column(db.String(200))
    vehicle       = db.Column(db.String(200))
    service       = db.Column(db.String(200))
    status        = db.Column(db.String(32), default='pending')
    assigned_to   = db.Column(db.String(200), default='Unassigned')
    date          = db.Column(db.String(10))
    time_estimate = db.Column(db.String(50))


class Customer(db.Model):
    __tablename__ = 'customers'
    id          = db.Column(db.Integer, primary_key=True)
    name        = db.Column(db.String(200), nullable=False)
    phone       = db.Column(db.String(50))
    email       = db.Column(db.String(200))
    status      = db.Column(db.String(32), default='active')
    last_visit  = db.Column(db.String(40))
    total_spend = db.Column(db.Float, default=0.0)
    visit_count = db.Column(db.Integer, default=0)


class CustomerVehicle(db.Model):
    __tablename__ = 'customer_vehicles'
    id           = db.Column(db.Integer, primary_key=True)
    customer_id  = db.Column(db.Integer, nullable=False)
    vehicle_info = db.Column(db.String(200), nullable=False)


class CustomerNote(db.Model):
    __tablename__ = 'customer_notes'
    id          = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, nullable=False)
    note        = db.Column(db.Text, nullable=False)
    created_by  = db.Column(db.String(100), default='System')
    created_at  = db.Column(db.String(40))


class Technician(db.Model):
    __tablename__ = 'technicians'
    id   = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)


class Service(db.Model):
    __tablename__ = 'services'
    id    = db.Column(db.Integer, primary_key=True)
    name  = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Float, default=0.0)


class InventoryItem(db.Model):
    """Stock is held in container units when ``is_bulk_product`` is set."""
    __tablename__ = 'inventory_items'
    id              = db.Column(db.Integer, primary_key=True)
    code            = db.Column(db.String(64))
    name            = db.Column(db.String(200), nullable=False)
    category        = db.Column(db.String(100))
    in_stock        = db.Column(db.Float, default=0)
    min_stock       = db.Column(db.Float, default=0)
    price           = db.Column(db.Float, default=0.0)
    is_bulk_product = db.Column(db.Boolean, default=False)
    bulk_quantity   = db.Column(db.Float)
    unit_of_measure = db.Column(db.String(20), default='unit')


class InventoryTransaction(db.Model):
    __tablename__ = 'inventory_transactions'
    id                = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, nullable=False)
    reference_type    = db.Column(db.String(32))
    reference_id      = db.Column(db.String(64))
    quantity_change   = db.Column(db.Float)
    quantity_after    = db.Column(db.Float)
    notes             = db.Column(db.Text)
    created_at        = db.Column(db.String(40))


class Invoice(db.Model):
    __tablename__ = 'invoices'
    id            = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(200), nullable=False)
    invoice_date  = db.Column(db.String(10), nullable=False)
    total         = db.Column(db.Float, default=0.0)
    status        = db.Column(db.String(32), default='draft')


class InvoiceItem(db.Model):
    __tablename__ = 'invoice_items'
    id                = db.Column(db.Integer, primary_key=True)
    invoice_id        = db.Column(db.Integer, nullable=False)
    description       = db.Column(db.Text)
    quantity          = db.Column(db.Float, default=1)
    unit_price        = db.Column(db.Float, default=0.0)
    total             = db.Column(db.Float, default=0.0)
    tax_rate          = db.Column(db.Float)
    inventory_item_id = db.Column(db.Integer, nullable=True)
