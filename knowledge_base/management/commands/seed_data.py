"""
knowledge_base/management/commands/seed_data.py
================================================
Management command to seed the database with a demonstration catalog.

Usage:
    python manage.py seed_data
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from knowledge_base.models import (
    DiagnosticCriterionModel,
    DiseaseCategoryModel,
    DiseaseModel,
    DiseaseSymptomModel,
    MedicationBrandNameModel,
    MedicationDosageModel,
    MedicationModel,
    SupportiveCareModel,
    SymptomModel,
    TreatmentModel,
)

SYMPTOMS = [
    ("Fever", "GENERAL", "Body temperature above 38 °C."),
    ("Headache", "NEUROLOGICAL", "Pain anywhere in the head."),
    ("Cough", "RESPIRATORY", "Sudden expulsion of air from the lungs."),
    ("Sore Throat", "RESPIRATORY", "Pain or irritation of the throat, worse when swallowing."),
    ("Runny Nose", "RESPIRATORY", "Excess nasal drainage."),
    ("Sneezing", "RESPIRATORY", "Involuntary expulsion of air through the nose."),
    ("Fatigue", "GENERAL", "Persistent tiredness or lack of energy."),
    ("Muscle Aches", "MUSCULOSKELETAL", "Diffuse pain in the muscles."),
    ("Chills", "GENERAL", "Feeling cold with shivering."),
    ("Nausea", "DIGESTIVE", "Urge to vomit."),
    ("Vomiting", "DIGESTIVE", "Forceful emptying of the stomach."),
    ("Diarrhea", "DIGESTIVE", "Loose, watery stools three or more times a day."),
    ("Abdominal Pain", "DIGESTIVE", "Pain between the chest and the pelvis."),
    ("Sensitivity To Light", "NEUROLOGICAL", "Discomfort caused by light."),
    ("Swollen Lymph Nodes", "GENERAL", "Enlarged, tender glands in the neck."),
]

CATEGORIES = {
    "Respiratory Infections": "Infections of the upper and lower airways.",
    "Digestive Disorders": "Conditions of the stomach and intestines.",
    "Neurological Disorders": "Conditions of the brain and nerves.",
}

# name: (category, urgency, description, [(symptom, is_primary, importance)])
DISEASES = {
    "Influenza": (
        "Respiratory Infections",
        "MEDIUM",
        "Contagious respiratory illness caused by influenza viruses.",
        [
            ("Fever", True, 9),
            ("Muscle Aches", True, 8),
            ("Cough", True, 7),
            ("Chills", False, 6),
            ("Fatigue", False, 6),
            ("Headache", False, 5),
            ("Sore Throat", False, 4),
        ],
    ),
    "Common Cold": (
        "Respiratory Infections",
        "LOW",
        "Mild viral infection of the nose and throat.",
        [
            ("Runny Nose", True, 9),
            ("Sneezing", True, 8),
            ("Sore Throat", False, 6),
            ("Cough", False, 5),
            ("Headache", False, 3),
        ],
    ),
    "Strep Throat": (
        "Respiratory Infections",
        "MEDIUM",
        "Bacterial infection of the throat and tonsils caused by group A streptococcus.",
        [
            ("Sore Throat", True, 10),
            ("Fever", True, 7),
            ("Swollen Lymph Nodes", False, 6),
            ("Headache", False, 3),
        ],
    ),
    "Gastroenteritis": (
        "Digestive Disorders",
        "MEDIUM",
        "Inflammation of the stomach and intestines, usually viral.",
        [
            ("Diarrhea", True, 9),
            ("Vomiting", True, 8),
            ("Nausea", False, 7),
            ("Abdominal Pain", False, 6),
            ("Fever", False, 4),
        ],
    ),
    "Migraine": (
        "Neurological Disorders",
        "LOW",
        "Recurrent, often one-sided headaches with sensory disturbance.",
        [
            ("Headache", True, 10),
            ("Sensitivity To Light", True, 7),
            ("Nausea", False, 5),
        ],
    ),
}

# disease: [(criteria, type, priority)]
CRITERIA = {
    "Influenza": [
        ("Sudden onset of fever with muscle aches", "positive", 1),
        ("Runny nose and sneezing dominate", "negative", 2),
    ],
    "Common Cold": [
        ("Gradual onset with nasal symptoms", "positive", 1),
        ("High fever, chills", "negative", 1),
    ],
    "Strep Throat": [
        ("Sore throat without cough", "positive", 1),
        ("Cough, runny nose", "negative", 1),
    ],
    "Gastroenteritis": [("Diarrhea with vomiting after suspect food", "positive", 1)],
    "Migraine": [("Recurrent headache episodes", "positive", 1)],
}

# generic name: (type, contraindications, [brand names])
MEDICATIONS = {
    "Paracetamol": ("analgesic", "Severe liver disease", ["Tylenol", "Panadol"]),
    "Ibuprofen": ("NSAID", "Active stomach ulcer", ["Advil", "Nurofen"]),
    "Amoxicillin": ("antibiotic", "Penicillin allergy", ["Amoxil"]),
    "Oseltamivir": ("antiviral", "", ["Tamiflu"]),
    "Oral Rehydration Salts": ("electrolyte", "", []),
}

# disease: [(treatment name, type, priority, is_required, [dosage dicts])]
TREATMENTS = {
    "Influenza": [
        ("Antiviral therapy", "medication", 1, True, [
            {"medication": "Oseltamivir", "patient_type": "adult", "age_min": 156,
             "dose": "75 mg", "frequency": "twice daily", "duration": "5 days"},
            {"medication": "Oseltamivir", "patient_type": "pediatric", "age_max": 155,
             "weight_min": 15, "weight_max": 40,
             "dose": "2 mg/kg", "frequency": "twice daily", "duration": "5 days",
             "max_single_dose": "75 mg"},
        ]),
        ("Fever and pain relief", "medication", 2, False, [
            {"medication": "Paracetamol", "patient_type": "adult", "age_min": 216,
             "dose": "500 mg", "frequency": "every 6 hours", "duration": "as needed",
             "max_daily_dose": "4000 mg"},
            {"medication": "Paracetamol", "patient_type": "pediatric",
             "dose": "15 mg/kg", "frequency": "every 6 hours", "duration": "as needed",
             "max_daily_dose": "60 mg/kg"},
            {"medication": "Ibuprofen", "patient_type": "adult", "age_min": 216,
             "dose": "400 mg", "frequency": "every 8 hours", "duration": "as needed",
             "allergy_info": "Avoid with NSAID or aspirin allergy", "is_alternative": True},
        ]),
    ],
    "Common Cold": [
        ("Symptom relief", "medication", 1, False, [
            {"medication": "Paracetamol", "patient_type": "adult", "age_min": 216,
             "dose": "500 mg", "frequency": "every 6 hours", "duration": "as needed"},
            {"medication": "Paracetamol", "patient_type": "pediatric",
             "dose": "15 mg/kg", "frequency": "every 6 hours", "duration": "as needed"},
        ]),
    ],
    "Strep Throat": [
        ("Antibiotic therapy", "medication", 1, True, [
            {"medication": "Amoxicillin", "patient_type": "adult", "age_min": 216,
             "dose": "500 mg", "frequency": "twice daily", "duration": "10 days",
             "allergy_info": "Contraindicated with penicillin allergy"},
            {"medication": "Amoxicillin", "patient_type": "pediatric",
             "dose": "25 mg/kg", "frequency": "twice daily", "duration": "10 days",
             "max_single_dose": "500 mg",
             "allergy_info": "Contraindicated with penicillin allergy"},
        ]),
        ("Pain relief", "medication", 2, False, [
            {"medication": "Ibuprofen", "patient_type": "adult", "age_min": 216,
             "dose": "400 mg", "frequency": "every 8 hours", "duration": "as needed"},
        ]),
    ],
    "Gastroenteritis": [
        ("Rehydration", "medication", 1, True, [
            {"medication": "Oral Rehydration Salts", "patient_type": "adult",
             "dose": "200 ml", "frequency": "after each loose stool", "duration": "until recovered"},
            {"medication": "Oral Rehydration Salts", "patient_type": "pediatric",
             "dose": "10 ml/kg", "frequency": "after each loose stool", "duration": "until recovered"},
        ]),
    ],
    "Migraine": [
        ("Acute pain relief", "medication", 1, False, [
            {"medication": "Ibuprofen", "patient_type": "adult", "age_min": 216,
             "dose": "400 mg", "frequency": "at onset", "duration": "single dose"},
        ]),
        ("Dark, quiet room", "lifestyle", 2, False, []),
    ],
}

# disease: [(category, title, description, priority)]
SUPPORTIVE_CARE = {
    "Influenza": [
        ("rest", "Get plenty of rest", "Stay home and rest until the fever has gone for 24 hours.", 1),
        ("hydration", "Drink fluids", "Drink water, broth or warm tea regularly.", 2),
    ],
    "Common Cold": [
        ("hydration", "Drink fluids", "Drink water, broth or warm tea regularly.", 1),
        ("comfort", "Use saline nasal spray", "Saline spray can relieve a blocked nose.", 3),
    ],
    "Strep Throat": [
        ("comfort", "Gargle with salt water", "Warm salt water can soothe the throat.", 2),
    ],
    "Gastroenteritis": [
        ("hydration", "Replace lost fluids", "Take small, frequent sips of fluid.", 1),
        ("diet", "Eat bland food", "Return to food gradually with bland meals.", 3),
    ],
    "Migraine": [
        ("rest", "Rest in a dark room", "Lie down in a quiet, dark room until the attack passes.", 1),
    ],
}


class Command(BaseCommand):
    help = "Seed the knowledge base with a demonstration catalog of symptoms, diseases and treatments."

    def _report(self, label: str, obj, created: bool) -> None:
        status = "CREATED" if created else "UPDATED"
        self.stdout.write(f"  [{status}] {label}: {obj}")

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING("\n=== Seeding Knowledge Base ===\n"))

        # ------------------------------------------------------------------
        # 1. Symptoms and categories
        # ------------------------------------------------------------------
        symptoms: dict[str, SymptomModel] = {}
        for name, category, description in SYMPTOMS:
            symptom, created = SymptomModel.objects.update_or_create(
                name=name,
                defaults={"category": category, "description": description},
            )
            self._report("Symptom", symptom, created)
            symptoms[name] = symptom

        categories: dict[str, DiseaseCategoryModel] = {}
        for name, description in CATEGORIES.items():
            categories[name], _ = DiseaseCategoryModel.objects.update_or_create(
                name=name, defaults={"description": description}
            )

        # ------------------------------------------------------------------
        # 2. Diseases with symptom links and criteria
        # ------------------------------------------------------------------
        diseases: dict[str, DiseaseModel] = {}
        for name, (category, urgency, description, links) in DISEASES.items():
            disease, created = DiseaseModel.objects.update_or_create(
                name=name,
                defaults={
                    "category": categories[category],
                    "urgency_level": urgency,
                    "description": description,
                },
            )
            self._report("Disease", disease, created)
            diseases[name] = disease

            for symptom_name, is_primary, importance in links:
                DiseaseSymptomModel.objects.update_or_create(
                    disease=disease,
                    symptom=symptoms[symptom_name],
                    defaults={"is_primary": is_primary, "importance": importance},
                )

            disease.diagnostic_criteria.all().delete()
            DiagnosticCriterionModel.objects.bulk_create(
                DiagnosticCriterionModel(disease=disease, criteria=text, type=kind, priority=priority)
                for text, kind, priority in CRITERIA.get(name, [])
            )

        # ------------------------------------------------------------------
        # 3. Medications, treatments and dosages
        # ------------------------------------------------------------------
        medications: dict[str, MedicationModel] = {}
        for generic_name, (med_type, contraindications, brands) in MEDICATIONS.items():
            medication, created = MedicationModel.objects.update_or_create(
                generic_name=generic_name,
                defaults={"type": med_type, "contraindications": contraindications},
            )
            self._report("Medication", medication, created)
            medication.brand_names.all().delete()
            MedicationBrandNameModel.objects.bulk_create(
                MedicationBrandNameModel(medication=medication, name=brand) for brand in brands
            )
            medications[generic_name] = medication

        for disease_name, treatments in TREATMENTS.items():
            disease = diseases[disease_name]
            disease.treatments.all().delete()
            for name, kind, priority, is_required, dosages in treatments:
                treatment = TreatmentModel.objects.create(
                    disease=disease,
                    type=kind,
                    name=name,
                    priority=priority,
                    is_required=is_required,
                )
                for dosage in dosages:
                    fields = dict(dosage)
                    MedicationDosageModel.objects.create(
                        treatment=treatment,
                        medication=medications[fields.pop("medication")],
                        **fields,
                    )

        # ------------------------------------------------------------------
        # 4. Supportive care
        # ------------------------------------------------------------------
        for disease_name, items in SUPPORTIVE_CARE.items():
            disease = diseases[disease_name]
            disease.supportive_care.all().delete()
            SupportiveCareModel.objects.bulk_create(
                SupportiveCareModel(
                    disease=disease,
                    category=category,
                    title=title,
                    description=description,
                    priority=priority,
                )
                for category, title, description, priority in items
            )

        # ------------------------------------------------------------------
        # Summary
        # ------------------------------------------------------------------
        self.stdout.write(
            self.style.SUCCESS(
                f"\n✔ Seeding complete: "
                f"{SymptomModel.objects.count()} symptoms, "
                f"{DiseaseModel.objects.count()} diseases, "
                f"{TreatmentModel.objects.count()} treatments, "
                f"{MedicationDosageModel.objects.count()} dosages.\n"
            )
        )
