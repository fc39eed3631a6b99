# backend/models/__init__.py
from .user_model import User
from .charity_model import CharityOrganization, OrganizationVolunteer
from .courier_model import IndependentCourier
from .listing_model import FoodListing
from .order_model import Order
from .claim_model import DonationClaim
from .delivery_model import Delivery
from .notification_model import Notification
