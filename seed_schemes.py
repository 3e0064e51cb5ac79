from app import create_app
from extensions import db
from models.scheme import Scheme

SCHEMES_DATA = [
    {
        "name": "PM Kisan Samman Nidhi",
        "description": "Income support of Rs 6,000 per year to landholding farmer families, paid in three instalments.",
        "ministry": "Ministry of Agriculture and Farmers Welfare",
        "category": "Agriculture",
        "benefits": ["Rs 6,000 per year", "Direct benefit transfer"],
        "link": "https://pmkisan.gov.in",
    },
    {
        "name": "Ayushman Bharat PM-JAY",
        "description": "Health cover of Rs 5 lakh per family per year for secondary and tertiary care hospitalisation.",
        "ministry": "Ministry of Health and Family Welfare",
        "category": "Health",
        "benefits": ["Rs 5 lakh cover per family", "Cashless treatment at empanelled hospitals"],
        "link": "https://pmjay.gov.in",
    },
    {
        "name": "Aadhaar Card Update",
        "description": "Update demographic details such as address, mobile number or date of birth on Aadhaar.",
        "ministry": "Unique Identification Authority of India",
        "category": "Identity",
        "benefits": ["Online address update", "Appointment booking at Aadhaar Seva Kendra"],
        "link": "https://myaadhaar.uidai.gov.in",
    },
    {
        "name": "PAN Card Application",
        "description": "Apply for a new Permanent Account Number or request changes to an existing PAN.",
        "ministry": "Income Tax Department",
        "category": "Finance",
        "benefits": ["Instant e-PAN", "Required for tax filing"],
        "link": "https://www.onlineservices.nsdl.com/paam/endUserRegisterContact.html",
    },
    {
        "name": "DigiLocker",
        "description": "Cloud storage for issued documents such as driving licence, marksheets and vehicle registration.",
        "ministry": "Ministry of Electronics and Information Technology",
        "category": "Digital Services",
        "benefits": ["Legally valid digital documents", "Free 1 GB storage"],
        "link": "https://www.digilocker.gov.in",
    },
]


def seed_schemes():
    """Seeds the knowledge store with sample scheme records, skipping names already present."""
    app = create_app()
    with app.app_context():
        added = 0
        for data in SCHEMES_DATA:
            if Scheme.query.filter_by(name=data["name"]).first():
                continue
            db.session.add(Scheme(**data))
            added += 1
        db.session.commit()
        print(f"[OK] Seeded {added} scheme(s); {len(SCHEMES_DATA) - added} already present.")


if __name__ == "__main__":
    seed_schemes()
